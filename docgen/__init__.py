"""
docgen - Document generation from versioned HTML templates

Turns a versioned set of HTML templates plus a data payload into a PDF document.

Architecture:
- Templating Context: Template acquisition, archive extraction, version-scoped caching
- Rendering Context: Template execution, HTML to PDF conversion, PDF link repair
- Service Context: HTTP surface (document generation and health check)
"""

__version__ = "0.1.0"
