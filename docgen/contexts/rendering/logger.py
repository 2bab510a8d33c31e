"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from pathlib import Path
from typing import List

from loguru import logger

CONTEXT_PREFIX = "[render]"


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_generation_start(doc_type: str, version: str, working_dir: Path) -> None:
    """Log start of document generation with context."""
    _log_info(f"Generating {doc_type} from templates v{version}")
    _log_debug(f"  Working directory: {working_dir}")


def log_conversion_start(cmd: List[str]) -> None:
    """Log the converter command line."""
    _log_info(f"Converting {Path(cmd[-2]).name} to PDF")
    _log_debug(f"  Command: {' '.join(cmd)}")


def log_conversion_result(
    returncode: int, stderr: str, elapsed_time: float, verbose: bool = False
) -> None:
    """
    Log converter exit status with diagnostics.

    Args:
        returncode: Converter exit code
        stderr: Captured converter stderr
        elapsed_time: Time taken to convert
        verbose: Show converter output even on success
    """
    if returncode == 0:
        _log_success(f"Conversion succeeded ({elapsed_time:.2f}s)")
    else:
        _log_error(f"Conversion failed with exit code {returncode} ({elapsed_time:.2f}s)")

    # Use opt(raw=True) to keep the converter's own line formatting
    if stderr and (verbose or returncode != 0):
        logger.opt(raw=True).debug(
            f"\n{'=' * 80}\nCONVERTER STDERR:\n{'=' * 80}\n{stderr}\n"
        )


def log_fix_result(report) -> None:
    """
    Log destinations repaired in a PDF.

    Args:
        report: FixReport from DestinationFixer.fix()
    """
    if report.total:
        _log_info(
            f"Repaired {report.total} page-number destinations "
            f"(annotations: {report.annotations}, named: {report.named}, "
            f"outline: {report.outline})"
        )
    else:
        _log_debug("No page-number destinations to repair")

    if report.unresolved:
        _log_warning(f"{report.unresolved} destinations reference pages outside the document")
