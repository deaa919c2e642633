"""Intra-doc link resolution.

Rustdoc lets crate docs link to items by path (``[`Foo`]``, ``[label](crate::m::f)``,
``[ref]: Foo``). Outside rustdoc those links are dead, so they are rewritten to
absolute documentation URLs, or reduced to their label when they cannot be
resolved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple
from urllib.parse import quote

from ..errors import UnresolvedLinkError
from ..logging import get_logger
from ..models import Diagnostic, LinkPolicy, LinkReference, PackageDescriptor, PackageRef
from ..rust.items import CrateIndex, ItemRecord
from .fences import code_mask

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_RUST_PATH = re.compile(
    rf"^(?:(?P<kind>[a-z]+)@)?(?P<path>(?:::)?{_IDENT}(?:::{_IDENT})*)(?P<suffix>!|\(\))?$"
)
_DEFINITION = re.compile(
    r"^(?P<indent> {0,3})\[(?P<label>[^\]]+)\]:[ \t]*(?P<target><[^>]*>|\S+)(?P<rest>.*)$"
)
_INLINE = re.compile(
    r"(?P<code>(?P<ticks>`+).+?(?P=ticks))"
    r"|(?P<image>!\[(?:[^\[\]]|\[[^\[\]]*\])*\](?:\([^)]*\)|\[[^\]]*\])?)"
    r"|(?<!\\)\[(?P<label>(?:[^\[\]\\]|\\.|\[[^\[\]]*\])*)\]"
    r"(?:\((?P<target><[^>]*>|[^\s()]*)(?:\s+(?P<title>\"[^\"]*\"|'[^']*'))?\)"
    r"|\[(?P<ref>[^\[\]]*)\])?"
)

# Kinds accepted by each rustdoc disambiguator.
_DISAMBIGUATORS: Dict[str, FrozenSet[str]] = {
    "struct": frozenset({"struct"}),
    "enum": frozenset({"enum"}),
    "union": frozenset({"union"}),
    "trait": frozenset({"trait"}),
    "type": frozenset({"type", "associatedtype"}),
    "mod": frozenset({"mod"}),
    "module": frozenset({"mod"}),
    "fn": frozenset({"fn", "method", "tymethod"}),
    "function": frozenset({"fn", "method", "tymethod"}),
    "method": frozenset({"method", "tymethod"}),
    "macro": frozenset({"macro"}),
    "const": frozenset({"constant", "associatedconstant"}),
    "constant": frozenset({"constant", "associatedconstant"}),
    "static": frozenset({"static"}),
    "field": frozenset({"structfield"}),
    "variant": frozenset({"variant"}),
    "value": frozenset(
        {"fn", "method", "tymethod", "constant", "associatedconstant", "static", "variant"}
    ),
    "prim": frozenset({"primitive"}),
    "primitive": frozenset({"primitive"}),
}
_SUFFIX_KINDS = {"!": "macro", "()": "fn"}
# Page kinds rustdoc uses in URLs when the disambiguator pins down one kind.
_PAGE_KINDS = {
    "struct": "struct",
    "enum": "enum",
    "union": "union",
    "trait": "trait",
    "mod": "mod",
    "module": "mod",
    "macro": "macro",
    "static": "static",
}
_KIND_ORDER = (
    "mod",
    "struct",
    "enum",
    "union",
    "trait",
    "type",
    "fn",
    "constant",
    "static",
    "macro",
    "variant",
    "structfield",
    "method",
    "tymethod",
    "associatedconstant",
    "associatedtype",
)

STD_CRATES = frozenset({"std", "core", "alloc", "proc_macro", "test"})
PRIMITIVES = frozenset(
    {
        "bool",
        "char",
        "str",
        "i8",
        "i16",
        "i32",
        "i64",
        "i128",
        "isize",
        "u8",
        "u16",
        "u32",
        "u64",
        "u128",
        "usize",
        "f32",
        "f64",
        "array",
        "slice",
        "tuple",
        "unit",
        "pointer",
        "reference",
        "never",
    }
)

# Prelude names rustdoc resolves without an import, relative to ``std/``.
_PRELUDE = {
    "Option": "option/enum.Option.html",
    "Some": "option/enum.Option.html#variant.Some",
    "None": "option/enum.Option.html#variant.None",
    "Result": "result/enum.Result.html",
    "Ok": "result/enum.Result.html#variant.Ok",
    "Err": "result/enum.Result.html#variant.Err",
    "Vec": "vec/struct.Vec.html",
    "String": "string/struct.String.html",
    "ToString": "string/trait.ToString.html",
    "Box": "boxed/struct.Box.html",
    "ToOwned": "borrow/trait.ToOwned.html",
    "Clone": "clone/trait.Clone.html",
    "Copy": "marker/trait.Copy.html",
    "Send": "marker/trait.Send.html",
    "Sync": "marker/trait.Sync.html",
    "Sized": "marker/trait.Sized.html",
    "Unpin": "marker/trait.Unpin.html",
    "Default": "default/trait.Default.html",
    "Drop": "ops/trait.Drop.html",
    "Fn": "ops/trait.Fn.html",
    "FnMut": "ops/trait.FnMut.html",
    "FnOnce": "ops/trait.FnOnce.html",
    "From": "convert/trait.From.html",
    "Into": "convert/trait.Into.html",
    "TryFrom": "convert/trait.TryFrom.html",
    "TryInto": "convert/trait.TryInto.html",
    "AsRef": "convert/trait.AsRef.html",
    "AsMut": "convert/trait.AsMut.html",
    "Iterator": "iter/trait.Iterator.html",
    "IntoIterator": "iter/trait.IntoIterator.html",
    "DoubleEndedIterator": "iter/trait.DoubleEndedIterator.html",
    "ExactSizeIterator": "iter/trait.ExactSizeIterator.html",
    "Extend": "iter/trait.Extend.html",
    "PartialEq": "cmp/trait.PartialEq.html",
    "Eq": "cmp/trait.Eq.html",
    "PartialOrd": "cmp/trait.PartialOrd.html",
    "Ord": "cmp/trait.Ord.html",
}
# Macros exported at the root of `std`, linked as `macro.<name>.html`.
_PRELUDE_MACROS = frozenset(
    {
        "assert",
        "assert_eq",
        "assert_ne",
        "dbg",
        "debug_assert",
        "debug_assert_eq",
        "debug_assert_ne",
        "eprint",
        "eprintln",
        "format",
        "matches",
        "panic",
        "print",
        "println",
        "todo",
        "unimplemented",
        "unreachable",
        "vec",
        "write",
        "writeln",
    }
)

UNRESOLVED_LINK = "unresolved-link"

logger = get_logger("postproc.intralinks")


def parse_link_target(target: str, label: str, line: Optional[int] = None) -> Optional[LinkReference]:
    """Interpret ``target`` as a Rust item path, or return None when it is not one."""
    text = target.strip()
    if len(text) > 1 and text.startswith("`") and text.endswith("`"):
        text = text.strip("`").strip()
    match = _RUST_PATH.match(text)
    if match is None:
        return None
    kind = match.group("kind")
    if kind is not None and kind not in _DISAMBIGUATORS:
        return None
    if kind is None:
        kind = _SUFFIX_KINDS.get(match.group("suffix") or "")
    path = tuple(segment for segment in match.group("path").split("::") if segment)
    return LinkReference(raw=target.strip(), path=path, disambiguator=kind, label=label, line=line)


def is_bare(reference: LinkReference) -> bool:
    """A lone identifier with no backticks, ``::``, suffix or disambiguator."""
    return reference.raw == reference.dotted and len(reference.path) == 1 and reference.disambiguator is None


def _plain_text(label: str) -> str:
    text = label.strip().strip("`").strip()
    if "@" in text:
        prefix, _, rest = text.partition("@")
        if prefix in _DISAMBIGUATORS:
            text = rest
    return text


def _display_label(label: str) -> str:
    """Drop a ``kind@`` prefix from a shortcut label, keeping its backticks."""
    match = re.match(r"^(?P<tick>`?)(?P<kind>[a-z]+)@(?P<rest>.*)$", label)
    if match and match.group("kind") in _DISAMBIGUATORS:
        return f"{match.group('tick')}{match.group('rest')}"
    return label


def _normalise_label(label: str) -> str:
    return " ".join(label.split()).casefold()


class LinkResolver:
    """Maps item paths to documentation URLs."""

    def __init__(
        self,
        package: PackageDescriptor,
        index: CrateIndex | None = None,
        *,
        docs_rs_base_url: str = "https://docs.rs",
        docs_rs_version: Optional[str] = None,
        std_base_url: str = "https://doc.rust-lang.org/stable",
    ) -> None:
        self.package = package
        self.index = index if index is not None else CrateIndex()
        self.docs_rs_base_url = docs_rs_base_url.rstrip("/")
        self.docs_rs_version = docs_rs_version
        self.std_base_url = std_base_url.rstrip("/")

    @property
    def crate_base(self) -> str:
        version = self.docs_rs_version or self.package.version
        return f"{self.docs_rs_base_url}/{self.package.name}/{version}/{self.package.crate_name}/"

    def resolve(self, reference: LinkReference) -> Optional[str]:
        path = reference.path
        kinds = _DISAMBIGUATORS.get(reference.disambiguator) if reference.disambiguator else None
        if not path:
            return None
        head, rest = path[0], path[1:]

        if head in {"crate", "self"} or head == self.package.crate_name:
            if not rest:
                return f"{self.crate_base}index.html" if kinds is None or "mod" in kinds else None
            return self._resolve_local(rest, kinds)
        if head == "super":
            return None

        local = self._resolve_local(path, kinds)
        if local is not None:
            return local

        if not rest and head in PRIMITIVES and (kinds is None or "primitive" in kinds):
            return f"{self.std_base_url}/std/primitive.{head}.html"
        if not rest and head in _PRELUDE_MACROS and reference.disambiguator == "macro":
            return f"{self.std_base_url}/std/macro.{head}.html"
        if not rest and head in _PRELUDE and reference.disambiguator not in {"macro", "prim", "primitive"}:
            return f"{self.std_base_url}/std/{_PRELUDE[head]}"
        if len(rest) == 1 and head in _PRELUDE:
            member = _prelude_member(_PRELUDE[head], rest[0], kinds)
            if member is not None:
                return f"{self.std_base_url}/std/{member}"
        if head in STD_CRATES:
            return self._external_url(f"{self.std_base_url}/{head}/", rest, reference.disambiguator)
        ref = self.package.find_package(head)
        if ref is not None:
            return self._external_url(self._package_base(ref), rest, reference.disambiguator)
        return None

    def _resolve_local(self, path: Tuple[str, ...], kinds: Optional[FrozenSet[str]]) -> Optional[str]:
        records = self.index.lookup(path)
        if kinds is not None:
            records = [record for record in records if record.kind in kinds]
        if not records:
            return None
        return self._item_url(self.crate_base, _preferred(records))

    def _package_base(self, ref: PackageRef) -> str:
        return f"{self.docs_rs_base_url}/{ref.name}/{ref.version}/{ref.crate_name}/"

    @staticmethod
    def _item_url(base: str, record: ItemRecord) -> str:
        location = record.location
        if record.kind == "mod":
            return f"{base}{''.join(f'{segment}/' for segment in location)}index.html"
        if record.is_member and len(location) >= 2:
            modules = "".join(f"{segment}/" for segment in location[:-2])
            owner, member = location[-2], location[-1]
            return f"{base}{modules}{record.owner_kind}.{owner}.html#{record.kind}.{member}"
        modules = "".join(f"{segment}/" for segment in location[:-1])
        return f"{base}{modules}{record.kind}.{location[-1]}.html"

    @staticmethod
    def _external_url(base: str, rest: Tuple[str, ...], disambiguator: Optional[str]) -> str:
        if not rest:
            return f"{base}index.html"
        page_kind = _PAGE_KINDS.get(disambiguator or "")
        if page_kind == "mod":
            return f"{base}{''.join(f'{segment}/' for segment in rest)}index.html"
        if page_kind is not None:
            modules = "".join(f"{segment}/" for segment in rest[:-1])
            return f"{base}{modules}{page_kind}.{rest[-1]}.html"
        return f"{base}index.html?search={quote('::'.join(rest))}"


def _preferred(records: Sequence[ItemRecord]) -> ItemRecord:
    def rank(record: ItemRecord) -> int:
        try:
            return _KIND_ORDER.index(record.kind)
        except ValueError:
            return len(_KIND_ORDER)

    return sorted(records, key=rank)[0]


def _prelude_member(page: str, member: str, kinds: Optional[FrozenSet[str]]) -> Optional[str]:
    """Anchor a variant or method of a prelude type; trait members are not guessed."""
    if "#" in page or "/trait." in page:
        return None
    if "/enum." in page and member[:1].isupper():
        if kinds is None or "variant" in kinds:
            return f"{page}#variant.{member}"
        return None
    if kinds is None or "method" in kinds:
        return f"{page}#method.{member}"
    return None


@dataclass
class IntraLinkResult:
    lines: List[str]
    origins: List[Optional[int]]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    unresolved: List[LinkReference] = field(default_factory=list)


class IntraLinkRewriter:
    """Rewrites intra-doc links in markdown lines using a :class:`LinkResolver`."""

    def __init__(
        self,
        resolver: LinkResolver,
        *,
        policy: LinkPolicy = LinkPolicy.DROP_LABEL,
        strip_links: bool = False,
    ) -> None:
        self.resolver = resolver
        self.policy = policy
        self.strip_links = strip_links

    def rewrite(self, lines: Sequence[str], origins: Sequence[Optional[int]]) -> IntraLinkResult:
        """Resolve every intra-doc link; under the ``fail`` policy raise on any miss."""
        result = IntraLinkResult(lines=[], origins=[])
        mask = code_mask(lines)

        # Definitions first, since references anywhere in the text may use them.
        all_definitions: Set[str] = set()
        intra_definitions: Dict[str, Optional[str]] = {}
        kept: List[Tuple[str, Optional[int], bool]] = []
        for index, line in enumerate(lines):
            origin = origins[index]
            match = None if mask[index] else _DEFINITION.match(line)
            if match is None:
                kept.append((line, origin, mask[index]))
                continue
            rewritten = self._definition(match, origin, all_definitions, intra_definitions, result)
            if rewritten is not None:
                # Definition lines never carry inline links of their own.
                kept.append((rewritten, origin, True))

        for line, origin, skip in kept:
            if not skip:
                line = _INLINE.sub(
                    lambda match: self._inline(match, origin, all_definitions, intra_definitions, result),
                    line,
                )
            result.lines.append(line)
            result.origins.append(origin)

        if result.unresolved and self.policy is LinkPolicy.FAIL:
            raise UnresolvedLinkError(result.unresolved)
        return result

    def _definition(
        self,
        match: re.Match[str],
        origin: Optional[int],
        all_definitions: Set[str],
        intra_definitions: Dict[str, Optional[str]],
        result: IntraLinkResult,
    ) -> Optional[str]:
        label = match.group("label")
        key = _normalise_label(label)
        all_definitions.add(key)
        target = match.group("target").strip("<>")
        reference = parse_link_target(target, label, origin)
        if reference is None:
            return match.group(0)
        url = self.resolver.resolve(reference)
        if url is None and is_bare(reference):
            return match.group(0)
        if self.strip_links:
            intra_definitions[key] = None
            return None
        if url is None:
            intra_definitions[key] = None
            self._unresolved(reference, result)
            return None
        intra_definitions[key] = url
        return f"{match.group('indent')}[{label}]: {url}{match.group('rest')}"

    def _inline(
        self,
        match: re.Match[str],
        origin: Optional[int],
        all_definitions: Set[str],
        intra_definitions: Dict[str, Optional[str]],
        result: IntraLinkResult,
    ) -> str:
        if match.group("code") or match.group("image"):
            return match.group(0)
        label = match.group("label")
        target = match.group("target")
        ref = match.group("ref")

        if target is not None:
            reference = parse_link_target(target.strip("<>"), label, origin)
            if reference is None:
                return match.group(0)
            url = self.resolver.resolve(reference)
            if url is None and is_bare(reference):
                return match.group(0)
            if self.strip_links:
                return label
            if url is None:
                self._unresolved(reference, result)
                return label
            title = f" {match.group('title')}" if match.group("title") else ""
            return f"[{label}]({url}{title})"

        key = _normalise_label(ref or label)
        # A collapsed reference with no definition is an intra-doc link like a shortcut.
        collapsed = ref == "" and key not in all_definitions
        if (ref is not None or key in all_definitions) and not collapsed:
            if key in intra_definitions and intra_definitions[key] is None:
                return label
            return match.group(0)

        reference = parse_link_target(label, label, origin)
        if reference is None:
            return match.group(0)
        url = self.resolver.resolve(reference)
        if url is None and is_bare(reference):
            return match.group(0)
        if self.strip_links:
            return _display_label(label)
        if url is None:
            self._unresolved(reference, result)
            return _plain_text(label)
        return f"[{_display_label(label)}]({url})"

    def _unresolved(self, reference: LinkReference, result: IntraLinkResult) -> None:
        logger.debug("Could not resolve intra-doc link %s", reference.raw)
        result.unresolved.append(reference)
        result.diagnostics.append(
            Diagnostic(
                kind=UNRESOLVED_LINK,
                message=f"could not resolve intra-doc link `{reference.raw.strip('`')}`",
                line=reference.line,
            )
        )


__all__ = [
    "IntraLinkResult",
    "IntraLinkRewriter",
    "LinkResolver",
    "PRIMITIVES",
    "STD_CRATES",
    "UNRESOLVED_LINK",
    "is_bare",
    "parse_link_target",
]
