"""
Shared utilities

- config: Explicit service configuration (dotenv + OmegaConf)
- logger: Generic loguru setup with provenance tracking
- pdf_processing: PDF header and page count helpers
"""
