"""Leading title and badge block handling."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..logging import get_logger
from .headings import heading_level, setext_level

_BADGE = re.compile(
    r"\[!\[[^\]]*\]\([^)]*\)\]\([^)]*\)"
    r"|\[!\[[^\]]*\]\[[^\]]*\]\]\[[^\]]*\]"
    r"|!\[[^\]]*\]\([^)]*\)"
    r"|!\[[^\]]*\]\[[^\]]*\]"
    r"|<a\b[^>]*>\s*<img\b[^>]*>\s*</a>"
    r"|<img\b[^>]*>"
)

logger = get_logger("postproc.sections")


def is_badge_line(line: str) -> bool:
    """True when ``line`` holds only badge images (optionally linked)."""
    if not line.strip():
        return False
    remainder, count = _BADGE.subn("", line)
    return count > 0 and not remainder.strip()


def _skip_blank(lines: Sequence[str], index: int) -> int:
    while index < len(lines) and not lines[index].strip():
        index += 1
    return index


def _title_end(lines: Sequence[str], index: int, *, top_level_only: bool) -> Optional[int]:
    """Return the index after a heading starting at ``index``, or None."""
    if index >= len(lines):
        return None
    level = heading_level(lines[index])
    if level is not None and (level == 1 or not top_level_only):
        return index + 1
    if index + 1 < len(lines):
        level = setext_level(lines[index], lines[index + 1])
        if level is not None and (level == 1 or not top_level_only):
            return index + 2
    return None


def _badge_end(lines: Sequence[str], index: int) -> Optional[int]:
    """Return the index after a paragraph of badges starting at ``index``, or None."""
    end = index
    while end < len(lines) and lines[end].strip():
        if not is_badge_line(lines[end]):
            return None
        end += 1
    return end if end > index else None


def leading_title_end(lines: Sequence[str]) -> Optional[int]:
    """Return the line index just past a README's leading title block.

    The block is a level-one heading optionally followed by a paragraph of badges.
    """
    start = _skip_blank(lines, 0)
    end = _title_end(lines, start, top_level_only=True)
    if end is None:
        return None
    badges = _badge_end(lines, _skip_blank(lines, end))
    return badges if badges is not None else end


@dataclass
class SectionStripper:
    """Drops a duplicate title and/or badge block from the start of the docs.

    Both are recognised purely by position: the title must be the first block and
    the badges must be the first block or directly follow that title.
    """

    strip_title: bool = False
    strip_badges: bool = False

    def strip(
        self, lines: Sequence[str], origins: Sequence[Optional[int]]
    ) -> Tuple[List[str], List[Optional[int]]]:
        if not (self.strip_title or self.strip_badges):
            return list(lines), list(origins)

        removed: List[Tuple[int, int]] = []
        cursor = _skip_blank(lines, 0)
        title_end = _title_end(lines, cursor, top_level_only=False)
        if title_end is not None and (title_end == len(lines) or not lines[title_end].strip()):
            if self.strip_title:
                removed.append((cursor, title_end))
                logger.debug("Stripping leading title %r", lines[cursor].strip())
            cursor = _skip_blank(lines, title_end)

        if self.strip_badges:
            badge_end = _badge_end(lines, cursor)
            if badge_end is not None:
                removed.append((cursor, badge_end))
                logger.debug("Stripping %d badge lines", badge_end - cursor)

        if not removed:
            return list(lines), list(origins)

        dropped = set()
        for start, end in removed:
            dropped.update(range(start, _skip_blank(lines, end)))
        kept = [index for index in range(len(lines)) if index not in dropped]
        out_lines = [lines[index] for index in kept]
        out_origins = [origins[index] for index in kept]
        # Leading blank lines left behind by the removal are dropped as well.
        while out_lines and not out_lines[0].strip():
            out_lines.pop(0)
            out_origins.pop(0)
        return out_lines, out_origins


__all__ = ["SectionStripper", "is_badge_line", "leading_title_end"]
