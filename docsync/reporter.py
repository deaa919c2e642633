"""Decides between writing, previewing and reporting drift for a merge result."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .logging import get_logger
from .models import MergeResult, MergeStatus

Writer = Callable[[Path, str], None]


class ReportStatus(Enum):
    UP_TO_DATE = "up-to-date"
    WRITTEN = "written"
    PREVIEW = "preview"
    MISMATCH = "mismatch"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        if self is ReportStatus.MISMATCH:
            return 2
        if self is ReportStatus.FAILED:
            return 1
        return 0


@dataclass
class ReportOutcome:
    """Result of reporting a README merge."""

    status: ReportStatus
    path: Path
    diff: str = ""
    error: Optional[Exception] = None


def _write_readme(path: Path, text: str) -> None:
    # newline="" keeps the merger's line terminators untouched.
    path.write_text(text, encoding="utf-8", newline="")


class Reporter:
    """The only component that writes the README."""

    def __init__(self, writer: Writer | None = None) -> None:
        self._writer = writer or _write_readme
        self.logger = get_logger("reporter")

    def report(
        self,
        result: MergeResult,
        readme_path: Path,
        original: str,
        *,
        check: bool = False,
        dry_run: bool = False,
    ) -> ReportOutcome:
        if result.status is MergeStatus.ERROR:
            self.logger.error("%s", result.error)
            return ReportOutcome(status=ReportStatus.FAILED, path=readme_path, error=result.error)

        if result.status is MergeStatus.UNCHANGED or result.text is None:
            self.logger.info("README at %s is up to date", readme_path)
            return ReportOutcome(status=ReportStatus.UP_TO_DATE, path=readme_path)

        diff = render_diff(original, result.text, name=readme_path.name)
        if check:
            self.logger.warning("README at %s is out of sync with the crate documentation", readme_path)
            return ReportOutcome(status=ReportStatus.MISMATCH, path=readme_path, diff=diff)
        if dry_run:
            self.logger.info("Dry-run completed; README changes not written")
            return ReportOutcome(status=ReportStatus.PREVIEW, path=readme_path, diff=diff)

        self._writer(readme_path, result.text)
        self.logger.info("README updated at %s", readme_path)
        return ReportOutcome(status=ReportStatus.WRITTEN, path=readme_path, diff=diff)


def render_diff(original: str, updated: str, *, name: str = "README.md") -> str:
    diff = difflib.unified_diff(
        original.splitlines(keepends=True),
        updated.splitlines(keepends=True),
        fromfile=f"{name} (original)",
        tofile=f"{name} (updated)",
    )
    return "".join(diff)


__all__ = ["ReportOutcome", "ReportStatus", "Reporter", "render_diff"]
