"""
Templating context logger.

Provides logging interface for templating context with automatic [template] prefix.
All templating modules should import from this module, not from loguru directly.
"""

from pathlib import Path

from loguru import logger

CONTEXT_PREFIX = "[template]"


# Wrapper functions with automatic [template] prefix


def _log_info(message: str) -> None:
    """Log info message with [template] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [template] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [template] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [template] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [template] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level templating-specific logging helpers


def log_fetch_start(version: str, uri: str, target_dir: Path) -> None:
    """Log start of a templates download."""
    _log_info(f"Fetching templates v{version}")
    _log_debug(f"  Source: {uri}")
    _log_debug(f"  Target: {target_dir}")


def log_fetch_result(version: str, target_dir: Path, elapsed_time: float) -> None:
    """Log a completed templates download."""
    _log_success(f"Templates v{version} ready ({elapsed_time:.2f}s)")
    _log_debug(f"  Directory: {target_dir}")


def log_eviction(version: str, path: Path, reason: str) -> None:
    """Log removal of a cached templates version."""
    _log_info(f"Evicting templates v{version} ({reason})")
    _log_debug(f"  Directory: {path}")
