"""Tests for crate-level documentation extraction."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from docsync.errors import ParseFailure
from docsync.models import DocStyle
from docsync.rust import DocExtractor


def _texts(source: str) -> list[str]:
    block = DocExtractor().extract(textwrap.dedent(source).lstrip("\n"))
    return [line.text for line in block.lines]


def test_source_without_docs_yields_empty_block() -> None:
    block = DocExtractor().extract("use std::fs;\n\nstruct Nothing {}\n")
    assert block.is_empty
    assert block.text == ""


def test_line_comments_strip_one_space() -> None:
    lines = _texts(
        """
        #![cfg_attr(not(feature = "std"), no_std)]
        // normal comment

        //! This is the doc for the crate.
        //!This line doesn't start with space.
        //!
        //! And a nice empty line above us.
        //! Also a line ending in "

        struct Nothing {}
        """
    )
    assert lines == [
        "This is the doc for the crate.",
        "This line doesn't start with space.",
        "",
        "And a nice empty line above us.",
        'Also a line ending in "',
    ]


def test_line_comments_keep_extra_indentation() -> None:
    lines = _texts(
        """
        //! This is the doc for the crate.  This crate does:
        //!
        //!   1. nothing.
        //!   2. niente.

        struct Nothing {}
        """
    )
    assert lines == [
        "This is the doc for the crate.  This crate does:",
        "",
        "  1. nothing.",
        "  2. niente.",
    ]


def test_multi_line_block_comment() -> None:
    lines = _texts(
        """
        #![cfg_attr(not(feature = "std"), no_std)]
        /* normal comment */

        /*!
        This is the doc for the crate.
         This line start with space.

        And a nice empty line above us.
        */

        struct Nothing {}
        """
    )
    assert lines == [
        "This is the doc for the crate.",
        " This line start with space.",
        "",
        "And a nice empty line above us.",
    ]


def test_block_comment_decoration_is_removed() -> None:
    lines = _texts(
        """
        /*!
         * Decorated docs.
         *
         * Second paragraph.
         */
        pub fn f() {}
        """
    )
    assert lines == ["Decorated docs.", "", "Second paragraph."]


def test_single_line_block_comment() -> None:
    assert _texts("/*! Short docs.   */\nfn main() {}\n") == ["Short docs."]


def test_doc_attributes_are_decoded() -> None:
    lines = _texts(
        r'''
        #![doc = "First line."]
        #![doc = ""]
        #![doc = r#"Raw "quoted" text."#]
        #![doc = "Escaped\ttab"]
        pub struct S;
        '''
    )
    assert lines == ["First line.", "", 'Raw "quoted" text.', "Escaped\ttab"]


def test_line_numbers_and_styles_are_recorded() -> None:
    source = "// header\n//! One\n#![doc = \"Two\"]\nfn main() {}\n"
    block = DocExtractor().extract(source)
    assert [(line.line, line.style) for line in block.lines] == [
        (2, DocStyle.LINE),
        (3, DocStyle.ATTRIBUTE),
    ]


def test_docs_after_first_item_and_nested_modules_are_ignored() -> None:
    lines = _texts(
        """
        //! Root docs.

        mod inner {
            //! Inner module docs.
        }

        //! Too late to count.
        """
    )
    assert lines == ["Root docs."]


def test_outer_doc_comments_are_not_crate_docs() -> None:
    lines = _texts(
        """
        //! Crate docs.
        /// Docs for the struct.
        pub struct S;
        """
    )
    assert lines == ["Crate docs."]


def test_non_literal_doc_attribute_is_skipped() -> None:
    lines = _texts(
        """
        #![doc = include_str!("../README.md")]
        //! Inline docs.
        fn main() {}
        """
    )
    assert lines == ["Inline docs."]


def test_shebang_is_skipped() -> None:
    assert _texts("#!/usr/bin/env run-cargo-script\n//! Script docs.\nfn main() {}\n") == [
        "Script docs."
    ]


def test_invalid_source_raises_parse_failure() -> None:
    path = Path("src/lib.rs")
    with pytest.raises(ParseFailure) as excinfo:
        DocExtractor().extract("//! Docs\n\nfn broken( {\n", path)
    assert excinfo.value.path == path
    assert excinfo.value.line >= 1
    assert "src/lib.rs:" in str(excinfo.value)
