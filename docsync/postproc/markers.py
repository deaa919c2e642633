"""Managed marker handling for the synced README region."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from ..errors import MalformedMarkersError
from ..logging import get_logger
from ..models import InsertionPoint, LineTerminator, MarkerSpan, MergeResult, MergeStatus
from .fences import FenceTracker
from .headings import has_top_level_heading
from .sections import leading_title_end

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docsync.config import DocSyncConfig

DEFAULT_START_MARKER = "<!-- docsync start -->"
DEFAULT_END_MARKER = "<!-- docsync end -->"

logger = get_logger("postproc.markers")


class MarkerState(Enum):
    NONE = "none"
    OPEN = "open"
    CLOSED = "closed"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class MarkerScan:
    """Result of scanning README text for the marker pair."""

    state: MarkerState
    span: Optional[MarkerSpan] = None
    error: Optional[MalformedMarkersError] = None


class MarkerScanner:
    """Finds the marker pair, ignoring marker text inside fenced code blocks."""

    def __init__(self, start_marker: str = DEFAULT_START_MARKER, end_marker: str = DEFAULT_END_MARKER) -> None:
        if start_marker.strip() == end_marker.strip():
            raise ValueError("start and end markers must differ")
        self.start_marker = start_marker.strip()
        self.end_marker = end_marker.strip()

    def scan(self, text: str) -> MarkerScan:
        lines = text.splitlines(keepends=True)
        offsets: List[int] = []
        position = 0
        for line in lines:
            offsets.append(position)
            position += len(line)

        state = MarkerState.NONE
        tracker = FenceTracker()
        start_line: Optional[int] = None
        end_line: Optional[int] = None
        for index, line in enumerate(lines):
            if tracker.feed(line):
                continue
            stripped = line.strip()
            if stripped == self.start_marker:
                if state is MarkerState.NONE:
                    state, start_line = MarkerState.OPEN, index
                elif state is MarkerState.OPEN:
                    return self._malformed("duplicate start marker", [start_line, index])
                else:
                    return self._malformed("start marker after end marker", [end_line, index])
            elif stripped == self.end_marker:
                if state is MarkerState.NONE:
                    return self._malformed("end marker before start marker", [index])
                if state is MarkerState.OPEN:
                    state, end_line = MarkerState.CLOSED, index
                else:
                    return self._malformed("duplicate end marker", [end_line, index])

        if state is MarkerState.OPEN:
            return self._malformed("start marker without end marker", [start_line])
        if state is MarkerState.NONE:
            return MarkerScan(state=MarkerState.NONE)

        assert start_line is not None and end_line is not None
        span = MarkerSpan(
            start_line=start_line,
            end_line=end_line,
            content_start=offsets[start_line] + len(lines[start_line]),
            content_end=offsets[end_line],
        )
        return MarkerScan(state=MarkerState.CLOSED, span=span)

    @staticmethod
    def _malformed(reason: str, lines: Sequence[Optional[int]]) -> MarkerScan:
        error = MalformedMarkersError(reason, [line for line in lines if line is not None])
        return MarkerScan(state=MarkerState.MALFORMED, error=error)


def infer_line_terminator(text: str) -> str:
    """Return ``\\r\\n`` when CRLF line endings outnumber bare LF ones."""
    crlf = text.count("\r\n")
    lf = text.count("\n") - crlf
    return "\r\n" if crlf > lf else "\n"


class DocumentMerger:
    """Splices rendered documentation into README text between the markers."""

    def __init__(
        self,
        start_marker: str = DEFAULT_START_MARKER,
        end_marker: str = DEFAULT_END_MARKER,
        *,
        insertion_point: InsertionPoint = InsertionPoint.AFTER_TITLE,
        line_terminator: LineTerminator = LineTerminator.AUTO,
    ) -> None:
        self.scanner = MarkerScanner(start_marker, end_marker)
        self.insertion_point = insertion_point
        self.line_terminator = line_terminator

    @classmethod
    def from_config(cls, config: "DocSyncConfig") -> "DocumentMerger":
        readme = config.readme
        return cls(
            readme.start_marker,
            readme.end_marker,
            insertion_point=readme.insertion_point,
            line_terminator=readme.line_terminator,
        )

    @property
    def start_marker(self) -> str:
        return self.scanner.start_marker

    @property
    def end_marker(self) -> str:
        return self.scanner.end_marker

    def scan(self, readme: str) -> MarkerScan:
        return self.scanner.scan(readme)

    def has_title_outside(self, readme: str) -> bool:
        """True when the README has a level-one heading outside the managed region."""
        scan = self.scan(readme)
        if scan.span is not None:
            readme = readme[: scan.span.content_start] + readme[scan.span.content_end :]
        return has_top_level_heading(readme.splitlines())

    def merge(self, readme: str, content: str) -> MergeResult:
        """Merge ``content`` into ``readme``; never raises for marker problems."""
        scan = self.scan(readme)
        if scan.state is MarkerState.MALFORMED:
            logger.debug("Refusing to merge: %s", scan.error)
            return MergeResult(status=MergeStatus.ERROR, content=content, error=scan.error)

        newline = self._newline(readme)
        region = self._region(content, newline)

        if scan.span is not None:
            span = scan.span
            updated = readme[: span.content_start] + region + readme[span.content_end :]
            logger.debug("Markers found on lines %d and %d", span.start_line + 1, span.end_line + 1)
        else:
            block = f"{self.start_marker}{newline}{region}{self.end_marker}{newline}"
            updated = self._insert(readme, block, newline)
            logger.debug("No markers found, inserting block (%s)", self.insertion_point.value)

        if updated == readme:
            return MergeResult(status=MergeStatus.UNCHANGED, text=readme, content=content)
        return MergeResult(status=MergeStatus.UPDATED, text=updated, content=content)

    def _newline(self, readme: str) -> str:
        if self.line_terminator is LineTerminator.CRLF:
            return "\r\n"
        if self.line_terminator is LineTerminator.LF:
            return "\n"
        return infer_line_terminator(readme)

    @staticmethod
    def _region(content: str, newline: str) -> str:
        if not content.strip():
            return ""
        return newline + content.replace("\n", newline) + newline + newline

    def _insert(self, readme: str, block: str, newline: str) -> str:
        if not readme.strip():
            return block
        if self.insertion_point is InsertionPoint.TOP:
            return block + newline + readme
        if self.insertion_point is InsertionPoint.AFTER_TITLE:
            lines = readme.splitlines(keepends=True)
            end = leading_title_end([line.rstrip("\r\n") for line in lines])
            if end is not None:
                before = "".join(lines[:end])
                after = "".join(lines[end:])
                if not before.endswith("\n"):
                    before += newline
                if not after.strip():
                    return before + newline + block
                return before + newline + block + newline + after.lstrip("\r\n")
        return readme.rstrip("\r\n") + newline + newline + block


__all__ = [
    "DEFAULT_END_MARKER",
    "DEFAULT_START_MARKER",
    "DocumentMerger",
    "MarkerScan",
    "MarkerScanner",
    "MarkerState",
    "infer_line_terminator",
]
