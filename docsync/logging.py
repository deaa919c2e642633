"""Logging utilities for docsync commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docsync.models import Diagnostic

_LOGGER_NAME = "docsync"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the docsync hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the docsync logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[docsync] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def log_diagnostics(
    diagnostics: Iterable["Diagnostic"], logger: logging.Logger | None = None
) -> int:
    """Emit one warning per non-fatal diagnostic and return how many were logged."""
    target = logger or get_logger()
    count = 0
    for diagnostic in diagnostics:
        target.warning("%s [%s]", diagnostic, diagnostic.kind)
        count += 1
    return count


__all__ = ["configure_logging", "get_logger", "log_diagnostics"]
