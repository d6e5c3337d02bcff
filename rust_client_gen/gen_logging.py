"""
Logging configuration for the Rust client generation pipeline.

Usage in generator modules:
    from rust_client_gen.gen_logging import get_logger
    logger = get_logger(__name__)

The root logger name is "rustgen". Log levels are controlled by the CLI.
"""

from __future__ import annotations

import logging
import sys
from typing import Final

_LOGGER_NAME: Final = "rustgen"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child logger under the rustgen hierarchy.

    Args:
        name: Module __name__, or None for the root rustgen logger.

    Returns:
        logging.Logger instance
    """
    if name is None or name == _LOGGER_NAME:
        return logging.getLogger(_LOGGER_NAME)
    # "rust_client_gen.generator.renderer" -> "rustgen.renderer"
    short = name.rsplit(".", 1)[-1]
    return logging.getLogger(f"{_LOGGER_NAME}.{short}")


def configure_gen_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure the rustgen logger hierarchy.

    Levels:
        --verbose / -v  -> DEBUG   (per type and per operation detail)
        (default)       -> INFO    (phase headers + summary lines)
        --quiet / -q    -> WARNING (warnings and errors only)

    Args:
        verbose: Enable DEBUG-level output.
        quiet: Suppress INFO output (WARNING+ only).
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger(_LOGGER_NAME)
    root_logger.setLevel(level)

    # Avoid duplicate handlers when called multiple times
    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_GenFormatter())
    root_logger.addHandler(handler)

    root_logger.propagate = False


class _GenFormatter(logging.Formatter):
    """Minimal formatter: emit the message as-is, prefixed for warnings and errors."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.capitalize()}: {message}"
        return message
