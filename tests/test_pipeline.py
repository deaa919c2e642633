"""End-to-end tests for the pure sync pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from docsync.config import DocSyncConfig
from docsync.errors import MalformedMarkersError, ParseFailure, UnresolvedLinkError
from docsync.models import HeadingShift, LinkPolicy, MergeStatus, PackageDescriptor
from docsync.pipeline import run_pipeline
from docsync.postproc.markers import DEFAULT_END_MARKER as END, DEFAULT_START_MARKER as START


@pytest.fixture
def config(tmp_path: Path) -> DocSyncConfig:
    return DocSyncConfig(root=tmp_path)


def _run(package: PackageDescriptor, config: DocSyncConfig, source: str, readme: str, **kwargs):
    return run_pipeline(package, package.lib_path, source, readme, config, **kwargs)


def test_title_shift_and_unresolved_link(package: PackageDescriptor, config: DocSyncConfig) -> None:
    readme = f"# My crate\n\n{START}\n{END}\n"
    result = _run(package, config, "//! # Title\n//!\n//! Hello [`Foo`].\n", readme)

    assert result.markdown == "## Title\n\nHello Foo."
    assert result.merge.status is MergeStatus.UPDATED
    assert result.merge.text == f"# My crate\n\n{START}\n\n## Title\n\nHello Foo.\n\n{END}\n"
    assert [d.kind for d in result.diagnostics] == ["unresolved-link"]


def test_second_run_is_unchanged(package: PackageDescriptor, config: DocSyncConfig) -> None:
    source = "//! Some docs.\n//!\n//! ```\n//! let x = 1;\n//! ```\n"
    first = _run(package, config, source, "# Crate\n")
    assert first.merge.text is not None

    second = _run(package, config, source, first.merge.text)

    assert second.merge.status is MergeStatus.UNCHANGED
    assert second.merge.text == first.merge.text


def test_outside_text_is_byte_identical(package: PackageDescriptor, config: DocSyncConfig) -> None:
    before = "# Crate\r\n\r\nHand written  \r\n\r\n"
    after = "\r\n## License\r\nMIT\r\n"
    readme = f"{before}{START}\r\nstale\r\n{END}{after}"

    result = _run(package, config, "//! Fresh.\n", readme)

    assert result.merge.text is not None
    assert result.merge.text.startswith(f"{before}{START}\r\n")
    assert result.merge.text.endswith(f"{END}{after}")


def test_lone_start_marker_is_an_error(package: PackageDescriptor, config: DocSyncConfig) -> None:
    result = _run(package, config, "//! Docs.\n", f"# Crate\n{START}\n")

    assert result.merge.status is MergeStatus.ERROR
    assert isinstance(result.merge.error, MalformedMarkersError)
    assert result.merge.text is None


def test_empty_docs_empty_the_region(package: PackageDescriptor, config: DocSyncConfig) -> None:
    result = _run(package, config, "pub fn f() {}\n", f"{START}\nold\n{END}\n")
    assert result.merge.text == f"{START}\n{END}\n"


def test_fences_are_tagged_and_no_run_stripped(package: PackageDescriptor, config: DocSyncConfig) -> None:
    source = "//! ```\n//! a();\n//! ```\n//!\n//! ```no_run\n//! b();\n//! ```\n"
    result = _run(package, config, source, "")
    assert result.markdown == "```rust\na();\n```\n\n```rust\nb();\n```"
    assert "no_run" not in (result.merge.text or "")


def test_strict_policy_raises(package: PackageDescriptor, config: DocSyncConfig) -> None:
    config.intralinks.on_unresolved = LinkPolicy.FAIL
    with pytest.raises(UnresolvedLinkError):
        _run(package, config, "//! See [`Missing`].\n", "")


def test_parse_failure_propagates(package: PackageDescriptor, config: DocSyncConfig) -> None:
    with pytest.raises(ParseFailure):
        _run(package, config, "//! Docs.\nfn broken( {\n", "")


def test_links_resolve_through_loaded_modules(package: PackageDescriptor, config: DocSyncConfig) -> None:
    modules = {package.directory / "src" / "shapes.rs": "pub struct Circle;\n"}

    def load(path: Path) -> Optional[str]:
        return modules.get(path)

    source = "//! Draw a [`shapes::Circle`] or a [`Square`].\npub mod shapes;\npub struct Square;\n"
    result = _run(package, config, source, "", load_source=load)

    base = "https://docs.rs/demo-crate/1.2.3/demo_crate/"
    assert result.markdown == (
        f"Draw a [`shapes::Circle`]({base}shapes/struct.Circle.html) "
        f"or a [`Square`]({base}struct.Square.html)."
    )
    assert result.diagnostics == ()


def test_heading_shift_modes(package: PackageDescriptor, config: DocSyncConfig) -> None:
    source = "//! # Title\n"
    assert _run(package, config, source, "no heading\n").markdown == "# Title"

    config.headings.shift = HeadingShift.ALWAYS
    assert _run(package, config, source, "no heading\n").markdown == "## Title"

    config.headings.shift = HeadingShift.NEVER
    assert _run(package, config, source, "# Crate\n").markdown == "# Title"


def test_docs_showing_the_markers_stay_idempotent(
    package: PackageDescriptor, config: DocSyncConfig
) -> None:
    source = f"//! Add these lines to your README:\n//!\n//! ```markdown\n//! {START}\n//! {END}\n//! ```\n"
    first = _run(package, config, source, "# Crate\n")
    assert first.merge.status is MergeStatus.UPDATED
    assert first.merge.text is not None

    second = _run(package, config, source, first.merge.text)

    assert second.merge.status is MergeStatus.UNCHANGED
    assert second.merge.text == first.merge.text


def test_unclosed_code_block_in_docs_stays_idempotent(
    package: PackageDescriptor, config: DocSyncConfig
) -> None:
    source = "//! ```\n//! let x = 1;\n"
    first = _run(package, config, source, "")
    assert first.merge.text == f"{START}\n\n```rust\nlet x = 1;\n```\n\n{END}\n"

    second = _run(package, config, source, first.merge.text)

    assert second.merge.status is MergeStatus.UNCHANGED
