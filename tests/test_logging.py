"""Tests for docsync logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from docsync.logging import configure_logging, get_logger, log_diagnostics
from docsync.models import Diagnostic


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_get_logger_uses_docsync_namespace() -> None:
    assert get_logger().name == "docsync"
    assert get_logger("pipeline").name == "docsync.pipeline"


def test_log_diagnostics_emits_warnings() -> None:
    logger = logging.getLogger("docsync.tests.diagnostics")
    handler = _ListHandler()
    logger.addHandler(handler)
    try:
        count = log_diagnostics(
            [
                Diagnostic("unresolved-link", "could not resolve intra-doc link `Foo`", line=3),
                Diagnostic("unrecognized-fence-attribute", "unrecognized code block attribute 'x'"),
            ],
            logger,
        )
    finally:
        logger.removeHandler(handler)

    assert count == 2
    assert [record.levelno for record in handler.records] == [logging.WARNING, logging.WARNING]
    assert handler.records[0].getMessage() == (
        "line 3: could not resolve intra-doc link `Foo` [unresolved-link]"
    )


def test_configure_logging_replaces_handlers(tmp_path: Path) -> None:
    log_file = tmp_path / "docsync.log"

    configure_logging(verbose=True)
    logger = configure_logging(verbose=True, log_file=log_file)
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        logger.debug("hello file")
        for handler in logger.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
