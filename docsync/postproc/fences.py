"""Code fence tracking and rustdoc code block normalisation."""

from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import Diagnostic, FenceAction

_FENCE_OPEN = re.compile(r"^(?P<indent>\s*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_TOKEN_SPLIT = re.compile(r"[\s,]+")

# rustdoc code block attributes and what happens to them outside rustdoc.
DEFAULT_FENCE_ACTIONS: Mapping[str, FenceAction] = {
    "rust": FenceAction.KEEP,
    "ignore": FenceAction.STRIP,
    "no_run": FenceAction.STRIP,
    "should_panic": FenceAction.STRIP,
    "compile_fail": FenceAction.STRIP,
    "test_harness": FenceAction.STRIP,
    "allow_fail": FenceAction.STRIP,
    "standalone_crate": FenceAction.STRIP,
}
_PATTERN_ACTIONS: Sequence[Tuple[re.Pattern[str], FenceAction]] = (
    (re.compile(r"^edition\d{4}$"), FenceAction.STRIP),
    (re.compile(r"^ignore-[\w-]+$"), FenceAction.STRIP),
)

UNRECOGNIZED_FENCE_ATTRIBUTE = "unrecognized-fence-attribute"

logger = get_logger("postproc.fences")


class FenceTracker:
    """Tracks whether successive markdown lines sit inside a fenced code block."""

    def __init__(self) -> None:
        self._open: Optional[Tuple[str, int]] = None

    def feed(self, line: str) -> bool:
        """Consume ``line``; return True when it is a fence or code block content."""
        if self._open is None:
            opening = match_fence(line)
            if opening is None:
                return False
            fence = opening.group("fence")
            self._open = (fence[0], len(fence))
            return True
        if is_closing_fence(line, *self._open):
            self._open = None
        return True


def match_fence(line: str) -> Optional[re.Match[str]]:
    match = _FENCE_OPEN.match(line)
    if match is None:
        return None
    # Backtick fences cannot carry backticks in their info string.
    if match.group("fence").startswith("`") and "`" in match.group("info"):
        return None
    return match


def is_closing_fence(line: str, char: str, length: int) -> bool:
    stripped = line.strip()
    return len(stripped) >= length and set(stripped) == {char}


def code_mask(lines: Sequence[str]) -> List[bool]:
    """Return, per line, whether it belongs to a fenced code block."""
    tracker = FenceTracker()
    return [tracker.feed(line) for line in lines]


class CodeFenceRewriter:
    """Makes rustdoc code blocks render correctly with plain markdown tooling.

    Untagged fences are Rust by rustdoc convention and get an explicit language;
    rustdoc-only attributes go through a fixed action table; hidden ``# `` lines
    are removed from Rust blocks.
    """

    def __init__(
        self,
        language: str = "rust",
        overrides: Mapping[str, FenceAction] | None = None,
    ) -> None:
        self.language = language
        self._overrides = dict(overrides or {})

    def action_for(self, token: str) -> Optional[FenceAction]:
        if token in self._overrides:
            return self._overrides[token]
        if token in DEFAULT_FENCE_ACTIONS:
            return DEFAULT_FENCE_ACTIONS[token]
        for pattern, action in _PATTERN_ACTIONS:
            if pattern.match(token):
                return action
        return None

    def rewrite(
        self, lines: Sequence[str], origins: Sequence[Optional[int]]
    ) -> Tuple[List[str], List[Optional[int]], List[Diagnostic]]:
        out_lines: List[str] = []
        out_origins: List[Optional[int]] = []
        diagnostics: List[Diagnostic] = []

        index = 0
        while index < len(lines):
            opening = match_fence(lines[index])
            if opening is None:
                out_lines.append(lines[index])
                out_origins.append(origins[index])
                index += 1
                continue

            fence = opening.group("fence")
            close = index + 1
            while close < len(lines) and not is_closing_fence(lines[close], fence[0], len(fence)):
                close += 1
            block_end = min(close + 1, len(lines))
            tokens = [token for token in _TOKEN_SPLIT.split(opening.group("info").strip()) if token]

            if not self._is_rust(tokens):
                out_lines.extend(lines[index:block_end])
                out_origins.extend(origins[index:block_end])
                if close >= len(lines):
                    out_lines.append(f"{opening.group('indent')}{fence}")
                    out_origins.append(origins[-1])
                index = block_end
                continue

            drop = False
            kept: List[str] = []
            for token in tokens:
                action = self.action_for(token)
                if action is None:
                    diagnostics.append(
                        Diagnostic(
                            kind=UNRECOGNIZED_FENCE_ATTRIBUTE,
                            message=f"unrecognized code block attribute {token!r}",
                            line=origins[index],
                        )
                    )
                elif action is FenceAction.DROP_BLOCK:
                    drop = True
                elif action is FenceAction.KEEP and token not in {"rust", self.language}:
                    kept.append(token)

            if drop:
                logger.debug("Dropping code block starting at line %s", origins[index])
                index = block_end
                continue

            info = ",".join([self.language, *kept])
            out_lines.append(f"{opening.group('indent')}{fence}{info}")
            out_origins.append(origins[index])
            for position in range(index + 1, block_end):
                line = lines[position]
                is_close = position == close
                visible = line if is_close else _visible_line(line)
                if visible is not None:
                    out_lines.append(visible)
                    out_origins.append(origins[position])
            # A block left open at the end of the docs would swallow the README end marker.
            if close >= len(lines):
                out_lines.append(f"{opening.group('indent')}{fence}")
                out_origins.append(origins[-1])
            index = block_end

        return out_lines, out_origins, diagnostics

    def _is_rust(self, tokens: Sequence[str]) -> bool:
        if not tokens:
            return True
        return any(self.action_for(token) is not None for token in tokens)


def _visible_line(line: str) -> Optional[str]:
    stripped = line.lstrip()
    if stripped == "#" or stripped.startswith("# "):
        return None
    if stripped.startswith("##"):
        return line[: len(line) - len(stripped)] + stripped[1:]
    return line


__all__ = [
    "CodeFenceRewriter",
    "DEFAULT_FENCE_ACTIONS",
    "FenceTracker",
    "UNRECOGNIZED_FENCE_ATTRIBUTE",
    "code_mask",
    "is_closing_fence",
    "match_fence",
]
