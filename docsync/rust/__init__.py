"""Rust source parsing, documentation extraction and item indexing."""

from .extractor import DocExtractor
from .items import CrateIndex, ItemRecord, SourceLoader
from .parser import ParsedSource, RustParser, decode_string_literal

__all__ = [
    "CrateIndex",
    "DocExtractor",
    "ItemRecord",
    "ParsedSource",
    "RustParser",
    "SourceLoader",
    "decode_string_literal",
]
