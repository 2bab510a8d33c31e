"""
Service context logger.

Provides logging interface for service context with automatic [service] prefix.
All service modules should import from this module, not from loguru directly.
"""

from typing import Any, Mapping

from loguru import logger

CONTEXT_PREFIX = "[service]"


# Wrapper functions with automatic [service] prefix


def _log_info(message: str) -> None:
    """Log info message with [service] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [service] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [service] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [service] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level service-specific logging helpers


def log_document_request(body: Mapping[str, Any]) -> None:
    """Log an incoming document request; the data payload is only logged at DEBUG."""
    metadata = body.get("metadata") or {}
    _log_info(
        f"POST /document type={metadata.get('type')} version={metadata.get('version')}"
    )
    # Lazy formatting keeps large payloads out of the hot path when DEBUG is off
    logger.opt(lazy=True).debug(
        "{} Request data: {}", lambda: CONTEXT_PREFIX, lambda: body.get("data")
    )


def log_request_failure(path: str, status_code: int, error: Exception) -> None:
    """Log a failed request with its response status."""
    if status_code >= 500:
        _log_error(f"{path} failed ({status_code}): {type(error).__name__}: {error}")
    else:
        _log_warning(f"{path} rejected ({status_code}): {error}")
