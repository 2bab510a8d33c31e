"""
Generic logger setup utilities.

Provides reusable loguru configuration with provenance tracking.
Context-specific wrappers should be defined in contexts/{context}/logger.py.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# Default level colors for console output
LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(
    context_name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    extra_provenance: dict = None,
    level_colors: dict = {},
) -> Optional[Path]:
    """
    Configure loguru for a context with provenance tracking.

    Sets up console output and, when a log directory is given, a file sink that
    captures everything at DEBUG level. Logs execution provenance (script,
    command, working directory, Python version, etc.).

    Args:
        context_name: Context identifier (e.g., "service", "render", "template")
        log_dir: Directory for the log file (None = console only)
        level: Minimum level for console output
        extra_provenance: Additional key-value pairs for provenance header
        level_colors: Override default level colors (e.g., {"INFO": "<cyan>"})

    Returns:
        Path to log file, or None when logging to console only

    Example:
        from docgen.utils.logger import setup_logger

        log_file = setup_logger(
            context_name="service",
            log_dir=Path("outs/logs"),
            extra_provenance={"Converter": "wkhtmltopdf"}
        )
    """
    # Remove default logger
    logger.remove()

    # Apply level colors (defaults + overrides)
    colors = {**LEVEL_COLORS, **level_colors}
    for level_name, color in colors.items():
        logger.level(level_name, color=color)

    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(exist_ok=True, parents=True)
        log_file = log_dir / f"{context_name}.log"

        # File handler captures everything (DEBUG level)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {thread.name} | {message}",
            level="DEBUG",
            enqueue=True,
        )

    # Console handler, colorized by level. stderr keeps stdout free for CLI output.
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>",
        level=level,
        colorize=True,
    )

    log_provenance(extra_provenance)

    return log_file


def setup_logger_from_config(config, context_name: str) -> Optional[Path]:
    """Configure loguru from the log_level, log_dir and converter settings of a DocGenConfig."""
    return setup_logger(
        context_name=context_name,
        log_dir=Path(config.log_dir) if config.log_dir else None,
        level=config.log_level,
        extra_provenance={"Converter": config.converter_binary},
    )


def log_provenance(extra_context: dict = None) -> None:
    """
    Log execution provenance to current logger.

    Logs standard context (script, command, working directory, Python version)
    plus any additional context provided.

    Args:
        extra_context: Additional key-value pairs to log
    """
    logger.info("=" * 80)
    logger.info(f"Script: {sys.argv[0]}")
    logger.info(f"Command: {' '.join(sys.argv)}")
    logger.info(f"Working directory: {Path.cwd()}")
    logger.info(f"Python: {sys.version.split()[0]}")

    if extra_context:
        for key, value in extra_context.items():
            logger.info(f"{key}: {value}")

    logger.info("=" * 80)
