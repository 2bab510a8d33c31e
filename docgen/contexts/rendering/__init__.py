"""
Rendering Context

Responsibilities:
- Executes the partial templates of a document type against request data
- Converts the rendered HTML document to PDF with wkhtmltopdf
- Repairs page-number destinations of the converted PDF

Owns: Per-request working directories, converter processes, PDF object graphs
Never: Downloads templates (delegates to the templating context)
"""

from docgen.contexts.rendering.converter import (
    ConversionError,
    ConversionTimeoutError,
    RenderMetadata,
    build_converter_command,
    convert_html_to_pdf,
)
from docgen.contexts.rendering.destinations import (
    DestinationFixer,
    DestinationFixError,
    FixReport,
    PageDestination,
    fix_pdf_destinations,
    fix_pdf_file,
)
from docgen.contexts.rendering.pipeline import (
    DocumentGenerator,
    HealthStatus,
    get_partial_templates,
)

__all__ = [
    # Conversion
    "RenderMetadata",
    "build_converter_command",
    "convert_html_to_pdf",
    "ConversionError",
    "ConversionTimeoutError",
    # Destination repair
    "DestinationFixer",
    "PageDestination",
    "FixReport",
    "fix_pdf_destinations",
    "fix_pdf_file",
    "DestinationFixError",
    # Pipeline
    "DocumentGenerator",
    "HealthStatus",
    "get_partial_templates",
]
