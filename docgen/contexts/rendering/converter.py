"""
HTML to PDF Conversion Module

Handles conversion of rendered HTML documents to PDF using wkhtmltopdf.
"""

import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from docgen.contexts.rendering.logger import log_conversion_result, log_conversion_start

DEFAULT_CONVERTER = "wkhtmltopdf"
DEFAULT_TIMEOUT_S = 300.0

# Page margins in points: top, right, bottom, left
PAGE_MARGINS = {"-T": "40", "-R": "25", "-B": "25", "-L": "25"}
HEADER_FONT_SIZE = "10"
HEADER_SPACING = "10"
FOOTER_TEXT = "Page [page] of [topage]"
FOOTER_FONT_SIZE = "10"


class ConversionError(RuntimeError):
    """
    Exception raised when the converter exits with a non-zero code.

    Attributes:
        returncode: Converter exit code (-1 when it was killed)
        stderr: Captured converter stderr, verbatim
        document: HTML document that was converted
    """

    def __init__(
        self,
        returncode: int,
        stderr: str,
        document: Optional[Path] = None,
        message: Optional[str] = None,
    ):
        self.returncode = returncode
        self.stderr = stderr
        self.document = document
        super().__init__(
            message or f"PDF creation of {document} failed!\n{stderr}\nError code: {returncode}"
        )


class ConversionTimeoutError(ConversionError):
    """Exception raised when the converter did not finish in time and was killed."""

    def __init__(self, timeout: float, stderr: str, document: Optional[Path] = None):
        self.timeout = timeout
        super().__init__(
            -1,
            stderr,
            document,
            message=f"PDF creation of {document} timed out after {timeout:.0f}s and was killed",
        )


@dataclass
class RenderMetadata:
    """
    Page setup requested by the document data.

    Attributes:
        header_lines: Centered header lines (at most two)
        orientation: Page orientation passed to the converter (e.g. "Landscape")
    """

    header_lines: Tuple[str, ...] = field(default_factory=tuple)
    orientation: Optional[str] = None

    @classmethod
    def from_data(cls, data: Any) -> "RenderMetadata":
        """
        Extract page setup from data["metadata"].

        The header is either a single line (string) or a list whose first two
        entries become two lines. Missing values keep the converter defaults.
        """
        metadata = data.get("metadata") if isinstance(data, Mapping) else None
        if not isinstance(metadata, Mapping):
            return cls()

        header = metadata.get("header")
        if isinstance(header, str):
            header_lines = (header,) if header else ()
        elif isinstance(header, (list, tuple)):
            header_lines = tuple(str(line) for line in header[:2])
        elif header is not None:
            header_lines = (str(header),)
        else:
            header_lines = ()

        orientation = metadata.get("orientation") or None
        return cls(header_lines=header_lines, orientation=orientation and str(orientation))


def build_converter_command(
    input_html: Path,
    output_pdf: Path,
    metadata: Optional[RenderMetadata] = None,
    binary: str = DEFAULT_CONVERTER,
) -> List[str]:
    """
    Build the wkhtmltopdf command line.

    Args:
        input_html: HTML document to convert
        output_pdf: PDF file to write
        metadata: Header lines and orientation (None = converter defaults)
        binary: Converter executable

    Returns:
        Command as argument list
    """
    metadata = metadata or RenderMetadata()

    cmd = [binary, "--encoding", "UTF-8", "--no-outline", "--print-media-type"]
    # Templates reference their assets through the local filesystem
    cmd.append("--enable-local-file-access")
    for flag, value in PAGE_MARGINS.items():
        cmd.extend([flag, value])

    if metadata.header_lines:
        cmd.extend(["--header-center", "\n".join(metadata.header_lines)])
        cmd.extend(["--header-font-size", HEADER_FONT_SIZE, "--header-spacing", HEADER_SPACING])

    cmd.extend(["--footer-center", FOOTER_TEXT, "--footer-font-size", FOOTER_FONT_SIZE])

    if metadata.orientation:
        cmd.extend(["--orientation", metadata.orientation])

    cmd.append(str(Path(input_html).resolve()))
    cmd.append(str(Path(output_pdf).resolve()))
    return cmd


def convert_html_to_pdf(
    document_html: Path,
    metadata: Optional[RenderMetadata] = None,
    binary: str = DEFAULT_CONVERTER,
    timeout: float = DEFAULT_TIMEOUT_S,
    verbose: bool = False,
) -> bytes:
    """
    Convert an HTML document into PDF bytes.

    Converter output goes to temporary files instead of pipes so that large
    outputs cannot block the process. A converter that exceeds the timeout is
    killed. All temporary files are removed on every exit path.

    Args:
        document_html: HTML document to convert
        metadata: Header lines and orientation
        binary: Converter executable
        timeout: Seconds before the converter is killed
        verbose: Log converter stderr on success too

    Returns:
        Raw PDF bytes as written by the converter

    Raises:
        ConversionError: If the converter exits with a non-zero code
        ConversionTimeoutError: If the converter exceeds the timeout
    """
    document_html = Path(document_html)

    with tempfile.TemporaryDirectory(prefix="docgen-convert-") as tmp_dir:
        tmp_path = Path(tmp_dir)
        output_pdf = tmp_path / "document.pdf"
        cmd = build_converter_command(document_html, output_pdf, metadata, binary)

        log_conversion_start(cmd)
        start_time = time.time()

        with open(tmp_path / "stdout.log", "w+b") as stdout_file, open(
            tmp_path / "stderr.log", "w+b"
        ) as stderr_file:
            try:
                result = subprocess.run(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=stdout_file,
                    stderr=stderr_file,
                    timeout=timeout,
                )
            except subprocess.TimeoutExpired:
                stderr = _read_capture(stderr_file)
                log_conversion_result(-1, stderr, time.time() - start_time)
                raise ConversionTimeoutError(timeout, stderr, document_html)

            stderr = _read_capture(stderr_file)

        log_conversion_result(result.returncode, stderr, time.time() - start_time, verbose)

        if result.returncode != 0:
            raise ConversionError(result.returncode, stderr, document_html)

        return output_pdf.read_bytes()


def _read_capture(capture_file) -> str:
    capture_file.flush()
    capture_file.seek(0)
    # Replace invalid UTF-8 bytes instead of crashing
    return capture_file.read().decode("utf-8", errors="replace")
