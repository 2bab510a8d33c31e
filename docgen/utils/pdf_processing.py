"""
PDF processing utilities.

Helper functions:
    get_pdf_header: Read and validate the "%PDF-x.y" signature of a document.
    page_count: Quick page count without full parsing of page content.
"""

import io
import re
from pathlib import Path
from typing import Optional, Union

from PyPDF2 import PdfReader

PDF_HEADER_PATTERN = re.compile(r"%PDF-\d\.\d")
PDF_HEADER_LENGTH = 8


def get_pdf_header(pdf: Union[bytes, Path]) -> Optional[str]:
    """
    Get the PDF signature (e.g. "%PDF-1.4") of a document, or None if invalid.

    The signature must be exactly 8 bytes long and followed by a line break
    (CR or LF).

    Args:
        pdf: PDF content or path to a PDF file

    Returns:
        Header string, or None if the document does not start with a valid header
    """
    if isinstance(pdf, Path):
        with open(pdf, "rb") as f:
            head = f.read(PDF_HEADER_LENGTH + 1)
    else:
        head = bytes(pdf[: PDF_HEADER_LENGTH + 1])

    if len(head) < PDF_HEADER_LENGTH + 1:
        return None

    # CR and LF are both valid line breaks after the header
    if head[PDF_HEADER_LENGTH] not in (0x0D, 0x0A):
        return None

    header = head[:PDF_HEADER_LENGTH].decode("iso-8859-1")
    if not PDF_HEADER_PATTERN.fullmatch(header):
        return None

    return header


def page_count(pdf: Union[bytes, Path]) -> Optional[int]:
    """Get page count from PDF, or None if unreadable."""
    try:
        source = io.BytesIO(pdf) if isinstance(pdf, bytes) else str(pdf)
        reader = PdfReader(source)
        return len(reader.pages)
    except Exception:
        return None
