"""Heading level renormalisation for extracted documentation."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from .fences import code_mask

_ATX = re.compile(r"^(?P<indent> {0,3})(?P<hashes>#{1,6})(?P<rest>(?:[ \t].*)?)$")
_SETEXT_H1 = re.compile(r"^ {0,3}=+[ \t]*$")
_SETEXT_H2 = re.compile(r"^ {0,3}-+[ \t]*$")
_NOT_PARAGRAPH = re.compile(r"^(?: {4,}|\s*(?:[-*+>]|\d+[.)])(?:\s|$)|\s*#|\s*<)")

MAX_HEADING_LEVEL = 6


def heading_level(line: str) -> Optional[int]:
    """Return the level of an ATX heading line, or None."""
    match = _ATX.match(line)
    return len(match.group("hashes")) if match else None


def setext_level(text: str, underline: str) -> Optional[int]:
    """Return the level of a single-line setext heading, or None."""
    if not text.strip() or _NOT_PARAGRAPH.match(text):
        return None
    if _SETEXT_H1.match(underline):
        return 1
    if _SETEXT_H2.match(underline):
        return 2
    return None


def has_top_level_heading(lines: Sequence[str]) -> bool:
    """True when ``lines`` contain a level-one heading outside code blocks."""
    mask = code_mask(lines)
    for index, line in enumerate(lines):
        if mask[index]:
            continue
        if heading_level(line) == 1:
            return True
        previous_blank = index == 0 or not lines[index - 1].strip()
        if (
            index + 1 < len(lines)
            and not mask[index + 1]
            and previous_blank
            and setext_level(line, lines[index + 1]) == 1
        ):
            return True
    return False


def shift_headings(
    lines: Sequence[str],
    origins: Sequence[Optional[int]],
    offset: int,
) -> Tuple[List[str], List[Optional[int]]]:
    """Push every heading ``offset`` levels down, converting setext headings to ATX."""
    if offset <= 0:
        return list(lines), list(origins)

    mask = code_mask(lines)
    out_lines: List[str] = []
    out_origins: List[Optional[int]] = []
    index = 0
    while index < len(lines):
        line = lines[index]
        if mask[index]:
            out_lines.append(line)
            out_origins.append(origins[index])
            index += 1
            continue

        match = _ATX.match(line)
        if match is not None:
            level = min(MAX_HEADING_LEVEL, len(match.group("hashes")) + offset)
            out_lines.append(f"{match.group('indent')}{'#' * level}{match.group('rest')}")
            out_origins.append(origins[index])
            index += 1
            continue

        previous_blank = index == 0 or not lines[index - 1].strip()
        if index + 1 < len(lines) and not mask[index + 1] and previous_blank:
            level = setext_level(line, lines[index + 1])
            if level is not None:
                shifted = min(MAX_HEADING_LEVEL, level + offset)
                out_lines.append(f"{'#' * shifted} {line.strip()}")
                out_origins.append(origins[index])
                index += 2
                continue

        out_lines.append(line)
        out_origins.append(origins[index])
        index += 1
    return out_lines, out_origins


__all__ = ["MAX_HEADING_LEVEL", "has_top_level_heading", "heading_level", "setext_level", "shift_headings"]
