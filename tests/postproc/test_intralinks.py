"""Tests for intra-doc link resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import pytest

from docsync.errors import UnresolvedLinkError
from docsync.models import LinkPolicy, PackageDescriptor, PackageRef
from docsync.postproc.intralinks import (
    UNRESOLVED_LINK,
    IntraLinkResult,
    IntraLinkRewriter,
    LinkResolver,
    parse_link_target,
)
from docsync.rust.items import CrateIndex, ItemRecord

BASE = "https://docs.rs/demo-crate/1.2.3/demo_crate/"
STD = "https://doc.rust-lang.org/stable/std/"


@pytest.fixture
def index() -> CrateIndex:
    return CrateIndex(
        [
            ItemRecord(key=("Config",), kind="struct", location=("Config",)),
            ItemRecord(
                key=("Config", "new"),
                kind="method",
                location=("Config", "new"),
                owner_kind="struct",
            ),
            ItemRecord(key=("Mode",), kind="enum", location=("Mode",)),
            ItemRecord(
                key=("Mode", "Fast"), kind="variant", location=("Mode", "Fast"), owner_kind="enum"
            ),
            ItemRecord(key=("net",), kind="mod", location=("net",)),
            ItemRecord(key=("net", "tcp"), kind="mod", location=("net", "tcp")),
            ItemRecord(
                key=("net", "tcp", "connect"), kind="fn", location=("net", "tcp", "connect")
            ),
            ItemRecord(key=("Sock",), kind="struct", location=("net", "Socket")),
            ItemRecord(key=("shout",), kind="macro", location=("shout",)),
            ItemRecord(key=("secret",), kind="fn", location=("secret",), public=False),
        ]
    )


def _rewrite(
    text: str,
    package: PackageDescriptor,
    index: CrateIndex,
    *,
    policy: LinkPolicy = LinkPolicy.DROP_LABEL,
    strip_links: bool = False,
    version: str | None = None,
) -> Tuple[str, IntraLinkResult]:
    lines = text.split("\n")
    resolver = LinkResolver(package, index, docs_rs_version=version)
    result = IntraLinkRewriter(resolver, policy=policy, strip_links=strip_links).rewrite(
        lines, list(range(1, len(lines) + 1))
    )
    return "\n".join(result.lines), result


def test_parse_link_target_handles_disambiguators_and_suffixes() -> None:
    reference = parse_link_target("`struct@crate::Config`", "label")
    assert reference is not None
    assert reference.path == ("crate", "Config")
    assert reference.disambiguator == "struct"
    macro = parse_link_target("shout!", "shout!")
    assert macro is not None and macro.disambiguator == "macro"
    function = parse_link_target("helper()", "helper()")
    assert function is not None and function.disambiguator == "fn"
    assert parse_link_target("https://example.com", "x") is None
    assert parse_link_target("bogus@Thing", "x") is None


def test_shortcut_link_to_local_item(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite("See [`Config`].", package, index)
    assert text == f"See [`Config`]({BASE}struct.Config.html)."
    assert result.diagnostics == []


def test_member_and_module_urls(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite(
        "[`Config::new`] [`Mode::Fast`] [`net`] [`net::tcp::connect`] [`shout!`] [`Sock`]",
        package,
        index,
    )
    assert text == (
        f"[`Config::new`]({BASE}struct.Config.html#method.new) "
        f"[`Mode::Fast`]({BASE}enum.Mode.html#variant.Fast) "
        f"[`net`]({BASE}net/index.html) "
        f"[`net::tcp::connect`]({BASE}net/tcp/fn.connect.html) "
        f"[`shout!`]({BASE}macro.shout.html) "
        f"[`Sock`]({BASE}net/struct.Socket.html)"
    )


def test_crate_and_self_prefixes(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite(
        "[`crate::Config`] [`self::Mode`] [`demo_crate::net`] [`crate`]", package, index
    )
    assert text == (
        f"[`crate::Config`]({BASE}struct.Config.html) "
        f"[`self::Mode`]({BASE}enum.Mode.html) "
        f"[`demo_crate::net`]({BASE}net/index.html) "
        f"[`crate`]({BASE}index.html)"
    )


def test_disambiguator_is_dropped_from_label(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite("[`struct@Config`]", package, index)
    assert text == f"[`Config`]({BASE}struct.Config.html)"


def test_disambiguator_filters_kinds(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite("[`enum@Config`]", package, index)
    assert text == "Config"
    assert [diagnostic.kind for diagnostic in result.diagnostics] == [UNRESOLVED_LINK]


def test_inline_link_with_path_target(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite('Read [the config](crate::Config "Config docs").', package, index)
    assert text == f'Read [the config]({BASE}struct.Config.html "Config docs").'


def test_std_primitive_and_prelude_links(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite("[`u8`] [`Option`] [`std::vec::Vec`] [`trait@core::fmt::Debug`]", package, index)
    assert text == (
        f"[`u8`]({STD}primitive.u8.html) "
        f"[`Option`]({STD}option/enum.Option.html) "
        f"[`std::vec::Vec`]({STD}index.html?search=vec%3A%3AVec) "
        "[`core::fmt::Debug`](https://doc.rust-lang.org/stable/core/fmt/trait.Debug.html)"
    )


def test_dependency_links_use_its_version(tmp_path: Path) -> None:
    package = PackageDescriptor(
        name="demo-crate",
        version="1.2.3",
        manifest_path=tmp_path / "Cargo.toml",
        dependencies=(PackageRef("serde", "1.0.190", "serde"),),
    )
    text, _ = _rewrite("[`serde::Serialize`] [`trait@serde::Serialize`]", package, CrateIndex())
    assert text == (
        "[`serde::Serialize`](https://docs.rs/serde/1.0.190/serde/index.html?search=Serialize) "
        "[`serde::Serialize`](https://docs.rs/serde/1.0.190/serde/trait.Serialize.html)"
    )


def test_version_override(package: PackageDescriptor, index: CrateIndex) -> None:
    text, _ = _rewrite("[`Config`]", package, index, version="latest")
    assert text == "[`Config`](https://docs.rs/demo-crate/latest/demo_crate/struct.Config.html)"


def test_unresolved_shortcut_drops_to_plain_text(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite("Hello [`Foo`].", package, index)
    assert text == "Hello Foo."
    assert [(d.kind, d.line) for d in result.diagnostics] == [(UNRESOLVED_LINK, 1)]
    assert result.diagnostics[0].message == "could not resolve intra-doc link `Foo`"
    assert [link.path for link in result.unresolved] == [("Foo",)]


def test_private_items_do_not_resolve(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite("[`secret`] and [call](crate::secret)", package, index)
    assert text == "secret and call"
    assert len(result.unresolved) == 2


def test_fail_policy_raises_after_pass(package: PackageDescriptor, index: CrateIndex) -> None:
    with pytest.raises(UnresolvedLinkError) as excinfo:
        _rewrite("[`Foo`]\n\n[`Bar::baz`]", package, index, policy=LinkPolicy.FAIL)
    assert [link.line for link in excinfo.value.links] == [1, 3]
    assert "`Foo` (line 1)" in str(excinfo.value)


def test_bare_words_only_link_when_resolved(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite("- [x] done, see [Config] and [note]", package, index)
    assert text == f"- [x] done, see [Config]({BASE}struct.Config.html) and [note]"
    assert result.diagnostics == []


def test_reference_definitions(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite(
        "Use [the config][cfg] or [it][gone] or [site].\n\n"
        "[cfg]: crate::Config\n"
        "[gone]: crate::Missing\n"
        "[site]: https://example.com",
        package,
        index,
    )
    assert text == (
        "Use [the config][cfg] or it or [site].\n\n"
        f"[cfg]: {BASE}struct.Config.html\n"
        "[site]: https://example.com"
    )
    assert [link.raw for link in result.unresolved] == ["crate::Missing"]


def test_code_is_never_rewritten(package: PackageDescriptor, index: CrateIndex) -> None:
    source = "Inline `[Config]` here.\n\n```rust\nlet v = [`Config`];\n```"
    text, result = _rewrite(source, package, index)
    assert text == source
    assert result.unresolved == []


def test_plain_links_and_images_are_untouched(package: PackageDescriptor, index: CrateIndex) -> None:
    source = "[site](https://example.com) [![badge](b.svg)](https://ci) ![logo](logo.png)"
    text, _ = _rewrite(source, package, index)
    assert text == source


def test_strip_links_keeps_labels(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite(
        "[`Config`] and [docs](crate::Config) and [`Missing`]", package, index, strip_links=True
    )
    assert text == "`Config` and docs and `Missing`"
    assert result.diagnostics == []


def test_resolver_returns_none_for_super_paths(package: PackageDescriptor, index: CrateIndex) -> None:
    reference = parse_link_target("super::Config", "x")
    assert reference is not None
    assert LinkResolver(package, index).resolve(reference) is None


def test_collapsed_references_without_definition_are_links(
    package: PackageDescriptor, index: CrateIndex
) -> None:
    text, result = _rewrite("See [`Config`][] and [`Missing`][] here.", package, index)

    assert text == f"See [`Config`]({BASE}struct.Config.html) and Missing here."
    assert [d.kind for d in result.diagnostics] == [UNRESOLVED_LINK]
    assert [link.dotted for link in result.unresolved] == ["Missing"]


def test_collapsed_reference_with_definition_is_kept(
    package: PackageDescriptor, index: CrateIndex
) -> None:
    text, _ = _rewrite("See [Config][].\n\n[Config]: https://example.com", package, index)
    assert text == "See [Config][].\n\n[Config]: https://example.com"


def test_unresolved_collapsed_reference_fails_under_strict_policy(
    package: PackageDescriptor, index: CrateIndex
) -> None:
    with pytest.raises(UnresolvedLinkError):
        _rewrite("See [`Missing`][].", package, index, policy=LinkPolicy.FAIL)


def test_prelude_macros_and_members(package: PackageDescriptor, index: CrateIndex) -> None:
    text, result = _rewrite(
        "[`vec!`] [`format!`] [`Option::Some`] [`Result::map`] [`Iterator::next`]", package, index
    )
    assert text == (
        f"[`vec!`]({STD}macro.vec.html) "
        f"[`format!`]({STD}macro.format.html) "
        f"[`Option::Some`]({STD}option/enum.Option.html#variant.Some) "
        f"[`Result::map`]({STD}result/enum.Result.html#method.map) "
        "Iterator::next"
    )
    assert [link.dotted for link in result.unresolved] == ["Iterator::next"]
