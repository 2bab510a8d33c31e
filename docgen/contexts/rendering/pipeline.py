"""
Document generation pipeline.

Combines the templating context (cached templates, partial execution) with
HTML to PDF conversion and destination repair:

    templates v{version} (cache) → private working copy → rendered partials
        → converter → destination repair → PDF bytes

Every generate() call works on its own copy of the cached templates, so the
shared cache entry is never modified. The working copy is removed on success
and failure alike.
"""

import shutil
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from docgen.contexts.rendering.converter import (
    RenderMetadata,
    convert_html_to_pdf,
)
from docgen.contexts.rendering.destinations import fix_pdf_destinations
from docgen.contexts.rendering.logger import (
    _log_debug,
    _log_error,
    _log_success,
    log_generation_start,
)
from docgen.contexts.templating import (
    TemplateCache,
    TemplatePartNotFoundError,
    TemplatesStore,
    flatten_template,
    render_template,
    select_templates_store,
)
from docgen.utils.config import DocGenConfig
from docgen.utils.pdf_processing import get_pdf_header

Converter = Callable[[Path, Optional[RenderMetadata]], bytes]

# Partial name → file name below templates/ ({type} is the document type)
PARTIAL_TEMPLATES = {
    "document": "{type}.html.tmpl",
    "header": "header.inc.html.tmpl",
    "footer": "footer.inc.html.tmpl",
}

HEALTH_DOCUMENT = "<html>document</html>"
EXPECTED_PDF_HEADER = "%PDF-1.4"


@dataclass
class HealthStatus:
    """
    Result of a conversion round trip.

    Attributes:
        status: "passing" or "failing"
        message: Failure reason (None when passing)
        time: When the check ran
    """

    status: str
    message: Optional[str] = None
    time: datetime = field(default_factory=datetime.now)

    @property
    def passing(self) -> bool:
        return self.status == "passing"


def get_partial_templates(
    base_path: Path,
    doc_type: str,
    visitor: Optional[Callable[[str], str]] = flatten_template,
) -> Dict[str, Path]:
    """
    Resolve the document, header and footer partials of a document type.

    All partials are checked before any of them is touched. The visitor may
    rewrite a partial's text; changed partials are written back in place, so
    base_path must be a private working copy.

    Args:
        base_path: Directory containing templates/
        doc_type: Document type (e.g. "InstallationReport")
        visitor: Rewrites partial template text (None = leave as is)

    Returns:
        Mapping of partial name to template path

    Raises:
        TemplatePartNotFoundError: If a partial does not exist
    """
    templates_dir = Path(base_path) / "templates"
    partials = {
        name: templates_dir / file_name.format(type=doc_type)
        for name, file_name in PARTIAL_TEMPLATES.items()
    }

    for name, path in partials.items():
        if not path.is_file():
            raise TemplatePartNotFoundError(name, path)

    if visitor is not None:
        for path in partials.values():
            template = path.read_text(encoding="utf-8")
            rewritten = visitor(template)
            if rewritten != template:
                path.write_text(rewritten, encoding="utf-8")

    return partials


def _check_path_component(value: str, label: str) -> None:
    """Reject values that would escape the working directory when used in a file name."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid {label}: {value!r}")


class DocumentGenerator:
    """
    Generates PDF documents from versioned templates.

    Args:
        config: Service configuration
        cache: Templates cache (default: cache populated by the selected store)
        store: Templates store used for the default cache
        convert: HTML to PDF converter taking (document_html, metadata)

    Example:
        generator = DocumentGenerator(load_config())
        pdf = generator.generate("InstallationReport", "1.0", {"name": "Project Phoenix"})
    """

    def __init__(
        self,
        config: DocGenConfig,
        cache: Optional[TemplateCache] = None,
        store: Optional[TemplatesStore] = None,
        convert: Optional[Converter] = None,
    ):
        self.config = config

        if cache is None:
            store = store or select_templates_store(config)
            cache = TemplateCache(
                Path(config.cache_base_path),
                store.get_templates_for_version,
                ttl=config.cache_ttl,
            )
        self.cache = cache

        self._convert = convert or partial(
            convert_html_to_pdf,
            binary=config.converter_binary,
            timeout=config.converter_timeout,
        )

    def generate(self, doc_type: str, version: str, data: Any) -> bytes:
        """
        Generate a PDF document.

        Args:
            doc_type: Document type, selects templates/{doc_type}.html.tmpl
            version: Templates version
            data: Template data; data["metadata"] may carry header and orientation

        Returns:
            PDF bytes with repaired destinations

        Raises:
            ValueError: If doc_type or version contains a path separator
            TemplateStoreError: If the templates cannot be downloaded
            TemplatePartNotFoundError: If a partial is missing
            TemplateRenderError: If a partial fails to render
            ConversionError: If the converter fails or times out
            DestinationFixError: If the converted PDF cannot be repaired
        """
        _check_path_component(doc_type, "document type")
        _check_path_component(version, "templates version")

        start_time = time.time()
        work_dir = Path(tempfile.mkdtemp(prefix=f"{doc_type}-v{version}-"))
        log_generation_start(doc_type, version, work_dir)

        try:
            # Copy under the version lock so that eviction cannot race the copy
            with self.cache.checkout(version) as templates_dir:
                shutil.copytree(templates_dir, work_dir, dirs_exist_ok=True)

            partials = get_partial_templates(work_dir, doc_type)

            rendered: Dict[str, Path] = {}
            for name, template_path in partials.items():
                # templates/{type}.html.tmpl → templates/{type}.html
                html_path = template_path.with_suffix("")
                html_path.write_text(render_template(template_path, data), encoding="utf-8")
                rendered[name] = html_path
                _log_debug(f"  Rendered {name} partial: {html_path.name}")

            pdf = self._convert(rendered["document"], RenderMetadata.from_data(data))
            pdf = fix_pdf_destinations(pdf)
        except Exception as e:
            _log_error(f"Generating {doc_type} v{version} failed: {e}")
            raise
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        _log_success(
            f"Generated {doc_type} v{version} ({len(pdf)} bytes, {time.time() - start_time:.2f}s)"
        )
        return pdf

    def check_health(self) -> HealthStatus:
        """
        Convert a one-line HTML document and check the PDF signature of the result.

        Runs conversion and destination repair only; templates are not involved.
        """
        try:
            with tempfile.TemporaryDirectory(prefix="docgen-health-") as tmp_dir:
                document_html = Path(tmp_dir) / "document.html"
                document_html.write_text(HEALTH_DOCUMENT, encoding="utf-8")

                pdf = fix_pdf_destinations(self._convert(document_html, None))
        except Exception as e:
            _log_error(f"Health check failed: {e}")
            return HealthStatus(status="failing", message=str(e))

        header = get_pdf_header(pdf)
        if header != EXPECTED_PDF_HEADER:
            _log_error(f"Health check failed: unexpected PDF header {header!r}")
            return HealthStatus(status="failing", message="conversion from HTML to PDF failed")

        return HealthStatus(status="passing")
