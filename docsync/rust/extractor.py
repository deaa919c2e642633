"""Crate-level documentation extraction.

Only the inner documentation attached to the crate root is collected: the
``//!`` line comments, ``/*! */`` block comments and ``#![doc = "..."]``
attributes that precede the first item of the file. Traversal stops at that
first item, so docs written for nested modules or later items never leak into
the result even though the parser sees them.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from tree_sitter import Node

from ..logging import get_logger
from ..models import DocBlock, DocLine, DocStyle
from .parser import ParsedSource, RustParser, decode_string_literal, iter_children

_COMMENT_TYPES = {"line_comment", "block_comment"}
_SKIPPED_TYPES = {"shebang"}

logger = get_logger("rust.extractor")


class DocExtractor:
    """Pulls the root documentation out of a Rust source file."""

    def __init__(self, parser: RustParser | None = None) -> None:
        self._parser = parser or RustParser()

    def extract(self, source: str, path: Optional[Path] = None) -> DocBlock:
        """Parse ``source`` and return its crate-level documentation."""
        return self.extract_parsed(self._parser.parse(source, path))

    def extract_parsed(self, parsed: ParsedSource) -> DocBlock:
        lines: List[DocLine] = []
        for node in parsed.root.children:
            if node.type in _COMMENT_TYPES:
                lines.extend(self._comment_lines(parsed, node))
            elif node.type == "inner_attribute_item":
                lines.extend(self._attribute_lines(parsed, node))
            elif node.type in _SKIPPED_TYPES:
                continue
            else:
                logger.debug(
                    "Root documentation ends at %s on line %d", node.type, node.start_point[0] + 1
                )
                break
        block = DocBlock(lines=tuple(lines))
        logger.debug("Extracted %d documentation lines from %s", len(lines), parsed.path or "<source>")
        return block

    def _comment_lines(self, parsed: ParsedSource, node: Node) -> List[DocLine]:
        text = parsed.text(node).rstrip("\r\n")
        first_line = node.start_point[0] + 1
        if node.type == "line_comment":
            if not text.startswith("//!"):
                return []
            return [DocLine(_strip_one_space(text[3:].rstrip("\r")), first_line, DocStyle.LINE)]

        if not text.startswith("/*!"):
            return []
        body = text[3:-2] if text.endswith("*/") else text[3:]
        return [
            DocLine(content, first_line + offset, DocStyle.BLOCK)
            for offset, content in _block_comment_lines(body)
        ]

    def _attribute_lines(self, parsed: ParsedSource, node: Node) -> List[DocLine]:
        attribute = next(iter_children(node, "attribute"), None)
        if attribute is None or not attribute.named_children:
            return []
        path = attribute.named_children[0]
        if path.type != "identifier" or parsed.text(path) != "doc":
            return []

        line = node.start_point[0] + 1
        value = attribute.child_by_field_name("value")
        if value is None or value.type not in {"string_literal", "raw_string_literal"}:
            logger.debug("Skipping doc attribute without a string literal on line %d", line)
            return []
        decoded = decode_string_literal(parsed.text(value))
        if decoded is None:
            logger.debug("Skipping undecodable doc literal on line %d", line)
            return []
        return [
            DocLine(content, line + offset, DocStyle.ATTRIBUTE)
            for offset, content in _literal_lines(decoded)
        ]


def _strip_one_space(text: str) -> str:
    return text[1:] if text.startswith(" ") else text


def _literal_lines(value: str) -> List[Tuple[int, str]]:
    lines = value.splitlines()
    if not lines:
        return [(0, "")]
    if len(lines) == 1:
        return [(0, _strip_one_space(lines[0]))]
    numbered = list(enumerate(lines))
    if not numbered[0][1].strip():
        numbered = numbered[1:]
    return numbered


def _block_comment_lines(body: str) -> List[Tuple[int, str]]:
    raw = [line.rstrip("\r") for line in body.split("\n")]
    if len(raw) == 1:
        return [(0, _strip_one_space(raw[0]).rstrip())]

    numbered = list(enumerate(raw))
    if numbered[0][1].strip():
        numbered[0] = (0, _strip_one_space(numbered[0][1]))
    else:
        numbered = numbered[1:]
    if numbered and not numbered[-1][1].strip():
        numbered = numbered[:-1]

    # Leading " * " decoration is only removed when every line carries it.
    non_blank = [content for _, content in numbered if content.strip()]
    if non_blank and all(content.lstrip().startswith("*") for content in non_blank):
        numbered = [(offset, _strip_decoration(content)) for offset, content in numbered]
    return numbered


def _strip_decoration(line: str) -> str:
    stripped = line.lstrip()
    if not stripped.startswith("*"):
        return ""
    return _strip_one_space(stripped[1:])


__all__ = ["DocExtractor"]
