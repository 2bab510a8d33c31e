"""Shared fixtures: hand-built PDF documents and template archives."""

import io
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from docgen.utils.config import DocGenConfig

DOCUMENT_TEMPLATE = """<html>
\t<head><title>{{name}}</title></head>
\t<body>
\t\t<h1>Installation Report</h1>
\t\t<p>{{name}}</p>
\t</body>
</html>
"""
HEADER_TEMPLATE = "<html><body>{{name}}</body></html>\n"
FOOTER_TEMPLATE = "<html><body>footer</body></html>\n"


def build_pdf(objects: List[str], version: str = "1.4") -> bytes:
    """
    Serialize PDF object bodies into a complete document.

    Object n (1-based) is objects[n - 1]; object 1 must be the catalog.
    """
    out = bytearray(f"%PDF-{version}\n".encode("latin-1"))
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")

    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)


def linked_pdf_objects() -> List[str]:
    """
    Three-page document with page-number destinations in every structure.

    Page-number destinations to repair: 2 link annotations, 3 named
    destinations, 3 outline items. One link points at page 7 (out of range).
    """
    page = "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Annots {annots} >>"
    return [
        # 1: catalog
        "<< /Type /Catalog /Pages 2 0 R /Dests 10 0 R /Names 11 0 R /Outlines 12 0 R >>",
        # 2: page tree
        "<< /Type /Pages /Kids [3 0 R 4 0 R 5 0 R] /Count 3 >>",
        # 3-5: pages
        page.format(annots="[6 0 R 7 0 R 8 0 R 9 0 R 18 0 R]"),
        page.format(annots="[]"),
        page.format(annots="[19 0 R]"),
        # 6: link with page-number /Dest
        "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /Dest [2 /XYZ 0 792 0] >>",
        # 7: link with GoTo action only
        "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /A << /S /GoTo /D [1 /Fit] >> >>",
        # 8: link with direct destination
        "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /Dest [5 0 R /Fit] >>",
        # 9: link marked as not a page-number destination
        "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /Dest [-1 /Fit] >>",
        # 10: flat named destinations
        "<< /chapter1 [1 /XYZ 0 0 0] /direct [3 0 R /Fit] >>",
        # 11: names dictionary
        "<< /Dests 13 0 R >>",
        # 12: outline root
        "<< /Type /Outlines /First 15 0 R /Last 16 0 R /Count 2 >>",
        # 13: name tree root
        "<< /Kids [14 0 R] >>",
        # 14: name tree leaf
        "<< /Names [(intro) [0 /Fit] (summary) << /D [2 /Fit] >>] /Limits [(intro) (summary)] >>",
        # 15-17: outline items
        "<< /Title (One) /Parent 12 0 R /Next 16 0 R /Dest [0 /Fit] "
        "/First 17 0 R /Last 17 0 R /Count 1 >>",
        "<< /Title (Two) /Parent 12 0 R /Prev 15 0 R /A << /S /GoTo /D [2 /Fit] >> >>",
        "<< /Title (One.a) /Parent 15 0 R /Dest [1 /Fit] >>",
        # 18: non-link annotation carrying a destination-like entry
        "<< /Type /Annot /Subtype /Text /Rect [0 0 10 10] /Dest [1 /Fit] >>",
        # 19: link to a page outside the document
        "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /Dest [7 /Fit] >>",
    ]


@pytest.fixture
def linked_pdf() -> bytes:
    """Three-page PDF whose link graph uses page numbers."""
    return build_pdf(linked_pdf_objects())


@pytest.fixture
def pdf_builder():
    """Access to build_pdf for tests that assemble their own documents."""
    return build_pdf


def build_templates_zip(
    root_dir: Optional[str] = None,
    files: Optional[Dict[str, str]] = None,
) -> bytes:
    """
    Build a templates archive in memory.

    Args:
        root_dir: Top-level directory wrapping all entries (GitHub archive layout)
        files: Archive path → content (default: InstallationReport partials)
    """
    if files is None:
        files = {
            "templates/InstallationReport.html.tmpl": DOCUMENT_TEMPLATE,
            "templates/header.inc.html.tmpl": HEADER_TEMPLATE,
            "templates/footer.inc.html.tmpl": FOOTER_TEMPLATE,
            "assets/style.css": "body { font-family: sans-serif; }\n",
        }

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(f"{root_dir}/{name}" if root_dir else name, content)
    return buffer.getvalue()


@pytest.fixture
def zip_builder():
    """Access to build_templates_zip for tests with custom archive contents."""
    return build_templates_zip


@pytest.fixture
def templates_zip() -> bytes:
    """Templates archive in Bitbucket layout (templates/ at the root)."""
    return build_templates_zip()


@pytest.fixture
def github_templates_zip() -> bytes:
    """Templates archive in GitHub layout ({repo}-{version}/templates/...)."""
    return build_templates_zip(root_dir="ods-document-generation-templates-1.0")


@pytest.fixture
def templates_dir(tmp_path, templates_zip) -> Path:
    """Extracted templates directory for version 1.0."""
    target = tmp_path / "templates-src"
    with zipfile.ZipFile(io.BytesIO(templates_zip)) as archive:
        archive.extractall(target)
    return target


@pytest.fixture
def config(tmp_path) -> DocGenConfig:
    """Configuration without Bitbucket settings and with a private cache directory."""
    return DocGenConfig(cache_base_path=str(tmp_path / "cache"))


@pytest.fixture
def bitbucket_config(tmp_path) -> DocGenConfig:
    """Configuration with a complete Bitbucket store."""
    return DocGenConfig(
        bitbucket_url="https://bitbucket.example.com",
        bitbucket_project="OPENDEVSTACK",
        bitbucket_repo="ods-document-generation-templates",
        bitbucket_username="builder",
        bitbucket_password="secret",
        cache_base_path=str(tmp_path / "cache"),
    )
