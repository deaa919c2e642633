"""Tree-sitter powered Rust parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import tree_sitter_rust
from tree_sitter import Language, Node, Parser, Tree

from ..errors import ParseFailure
from ..logging import get_logger

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_RAW_STRING = re.compile(r'^r(#*)"(.*)"\1$', re.DOTALL)
_ESCAPE = re.compile(
    r"\\(?:x(?P<hex>[0-9a-fA-F]{2})|u\{(?P<unicode>[0-9a-fA-F_]{1,8})\}|(?P<newline>\r?\n[ \t\r\n]*)|(?P<char>.))",
    re.DOTALL,
)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "0": "\0", "'": "'", '"': '"'}

logger = get_logger("rust.parser")


@dataclass(frozen=True)
class ParsedSource:
    """A parsed Rust file together with the bytes its nodes point into."""

    tree: Tree
    source_bytes: bytes
    path: Optional[Path] = None

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


class RustParser:
    """Parses Rust source text with the tree-sitter grammar."""

    def __init__(self) -> None:
        self._parser: Optional[Parser] = None

    def parse(self, source: str, path: Optional[Path] = None, *, strict: bool = True) -> ParsedSource:
        """Parse ``source``; with ``strict`` a syntax error raises :class:`ParseFailure`."""
        source_bytes = source.encode("utf-8")
        tree = self._get_parser().parse(source_bytes)
        parsed = ParsedSource(tree=tree, source_bytes=source_bytes, path=path)
        if tree.root_node.has_error:
            node = _first_error(tree.root_node) or tree.root_node
            row, column = node.start_point
            if node.is_missing:
                detail = f"expected {node.type}"
            else:
                snippet = parsed.text(node).strip().splitlines()
                detail = f"unexpected {snippet[0][:40]!r}" if snippet else "syntax error"
            if strict:
                raise ParseFailure(path, row + 1, column + 1, detail)
            logger.debug("Tolerating syntax error in %s at %d:%d", path, row + 1, column + 1)
        return parsed

    def _get_parser(self) -> Parser:
        if self._parser is None:
            self._parser = Parser(RUST_LANGUAGE)
        return self._parser


def _first_error(node: Node) -> Optional[Node]:
    for child in node.children:
        if child.type == "ERROR" or child.is_missing:
            return child
        if child.has_error:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def iter_children(node: Node, *types: str) -> Iterator[Node]:
    """Yield named children of ``node``, optionally restricted to ``types``."""
    for child in node.named_children:
        if not types or child.type in types:
            yield child


def decode_string_literal(literal: str) -> Optional[str]:
    """Return the value of a Rust string literal, or None for anything else."""
    raw = _RAW_STRING.match(literal)
    if raw is not None:
        return raw.group(2)
    if len(literal) < 2 or not (literal.startswith('"') and literal.endswith('"')):
        return None
    return _ESCAPE.sub(_unescape, literal[1:-1])


def _unescape(match: re.Match[str]) -> str:
    if match.group("hex") is not None:
        return chr(int(match.group("hex"), 16))
    if match.group("unicode") is not None:
        return chr(int(match.group("unicode").replace("_", ""), 16))
    if match.group("newline") is not None:
        return ""
    char = match.group("char")
    return _SIMPLE_ESCAPES.get(char, "\\" + char)


__all__ = [
    "ParsedSource",
    "RUST_LANGUAGE",
    "RustParser",
    "decode_string_literal",
    "iter_children",
]
