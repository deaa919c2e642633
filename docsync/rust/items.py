"""Index of the public items of a crate, used to resolve intra-doc links."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node

from ..logging import get_logger
from .parser import ParsedSource, RustParser, iter_children

SourceLoader = Callable[[Path], Optional[str]]
ItemPath = Tuple[str, ...]

_ITEM_KINDS = {
    "struct_item": "struct",
    "enum_item": "enum",
    "union_item": "union",
    "trait_item": "trait",
    "function_item": "fn",
    "function_signature_item": "fn",
    "type_item": "type",
    "const_item": "constant",
    "static_item": "static",
}
_OWNER_KINDS = {"struct", "enum", "union", "trait", "type"}
_MEMBER_KINDS = {
    "method",
    "tymethod",
    "variant",
    "structfield",
    "associatedconstant",
    "associatedtype",
}

logger = get_logger("rust.items")


@dataclass(frozen=True)
class ItemRecord:
    """A documented item: where links name it and where its page lives."""

    key: ItemPath
    kind: str
    location: ItemPath
    public: bool = True
    owner_kind: Optional[str] = None

    @property
    def is_member(self) -> bool:
        return self.kind in _MEMBER_KINDS


@dataclass
class _PendingImpl:
    owner: ItemPath
    trait_impl: bool
    body: Node
    parsed: ParsedSource


@dataclass
class _PendingReexport:
    target: ItemPath
    alias: ItemPath
    module: ItemPath


class CrateIndex:
    """Lookup table from item paths (relative to the crate root) to records."""

    def __init__(self, records: Iterable[ItemRecord] = ()) -> None:
        self._records: Dict[ItemPath, List[ItemRecord]] = {}
        for record in records:
            self.add(record)

    @classmethod
    def build(
        cls,
        entry_path: Path,
        load_source: SourceLoader,
        parser: RustParser | None = None,
    ) -> "CrateIndex":
        """Walk the module tree rooted at ``entry_path`` and index every item."""
        builder = _IndexBuilder(load_source, parser or RustParser())
        builder.visit_file(entry_path, (), public=True, module_dir=entry_path.parent)
        builder.finish()
        logger.debug("Indexed %d item paths from %s", len(builder.index), entry_path)
        return builder.index

    def add(self, record: ItemRecord) -> None:
        bucket = self._records.setdefault(record.key, [])
        if record not in bucket:
            bucket.append(record)

    def lookup(self, path: ItemPath) -> List[ItemRecord]:
        """Return the public records registered under ``path``."""
        return [record for record in self._records.get(tuple(path), []) if record.public]

    def lookup_any(self, path: ItemPath) -> List[ItemRecord]:
        return list(self._records.get(tuple(path), []))

    def keys_under(self, prefix: ItemPath) -> List[ItemPath]:
        size = len(prefix)
        return [key for key in self._records if key[:size] == prefix]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, tuple) and bool(self.lookup(path))


class _IndexBuilder:
    def __init__(self, load_source: SourceLoader, parser: RustParser) -> None:
        self.index = CrateIndex()
        self._load_source = load_source
        self._parser = parser
        self._visited: Set[Path] = set()
        self._impls: List[_PendingImpl] = []
        self._reexports: List[_PendingReexport] = []

    def visit_file(self, path: Path, module: ItemPath, *, public: bool, module_dir: Path) -> bool:
        """Index the items of one module file; False when the file cannot be loaded."""
        if path in self._visited:
            return True
        source = self._load_source(path)
        if source is None:
            return False
        self._visited.add(path)
        parsed = self._parser.parse(source, path, strict=False)
        self._visit_items(parsed, parsed.root, module, public=public, module_dir=module_dir)
        return True

    def finish(self) -> None:
        for pending in self._impls:
            self._apply_impl(pending)
        # Two passes so that re-exports of re-exports resolve.
        for _ in range(2):
            for pending in self._reexports:
                self._apply_reexport(pending)

    def _visit_items(
        self,
        parsed: ParsedSource,
        container: Node,
        module: ItemPath,
        *,
        public: bool,
        module_dir: Path,
    ) -> None:
        macro_export = False
        for node in container.named_children:
            node_type = node.type
            if node_type == "attribute_item":
                macro_export = macro_export or "macro_export" in parsed.text(node)
                continue
            if node_type in {"line_comment", "block_comment", "inner_attribute_item"}:
                continue
            exported, macro_export = macro_export, False

            if node_type == "mod_item":
                self._visit_module(parsed, node, module, public=public, module_dir=module_dir)
            elif node_type in _ITEM_KINDS:
                self._visit_item(parsed, node, module, public=public)
            elif node_type == "macro_definition":
                name = _field_text(parsed, node, "name")
                if name:
                    key = (name,) if exported else module + (name,)
                    self._add(key, "macro", public=exported)
            elif node_type == "impl_item":
                self._queue_impl(parsed, node, module)
            elif node_type == "use_declaration" and public and _is_public(parsed, node):
                argument = node.child_by_field_name("argument")
                if argument is not None:
                    for target, alias in _use_paths(parsed, argument, ()):
                        self._reexports.append(
                            _PendingReexport(target=target, alias=module + (alias,), module=module)
                        )
            elif node_type == "foreign_mod_item":
                body = node.child_by_field_name("body")
                if body is not None:
                    self._visit_items(parsed, body, module, public=public, module_dir=module_dir)

    def _visit_module(
        self,
        parsed: ParsedSource,
        node: Node,
        module: ItemPath,
        *,
        public: bool,
        module_dir: Path,
    ) -> None:
        name = _field_text(parsed, node, "name")
        if not name:
            return
        path = module + (name,)
        visible = public and _is_public(parsed, node)
        self._add(path, "mod", public=visible)
        body = node.child_by_field_name("body")
        if body is not None:
            self._visit_items(parsed, body, path, public=visible, module_dir=module_dir / name)
            return
        for candidate in (module_dir / f"{name}.rs", module_dir / name / "mod.rs"):
            if self.visit_file(candidate, path, public=visible, module_dir=module_dir / name):
                return
        logger.debug("Could not load the file for module %s", "::".join(path))

    def _visit_item(self, parsed: ParsedSource, node: Node, module: ItemPath, *, public: bool) -> None:
        name = _field_text(parsed, node, "name")
        if not name:
            return
        kind = _ITEM_KINDS[node.type]
        visible = public and _is_public(parsed, node)
        key = module + (name,)
        self._add(key, kind, public=visible)

        body = node.child_by_field_name("body")
        if body is None:
            return
        if kind == "struct":
            for field in iter_children(body, "field_declaration"):
                field_name = _field_text(parsed, field, "name")
                if field_name:
                    self._add_member(key, kind, field_name, "structfield", visible and _is_public(parsed, field))
        elif kind == "enum":
            for variant in iter_children(body, "enum_variant"):
                variant_name = _field_text(parsed, variant, "name")
                if variant_name:
                    self._add_member(key, kind, variant_name, "variant", visible)
        elif kind == "trait":
            for member in body.named_children:
                member_name = _field_text(parsed, member, "name")
                member_kind = _trait_member_kind(member.type)
                if member_name and member_kind:
                    self._add_member(key, kind, member_name, member_kind, visible)

    def _queue_impl(self, parsed: ParsedSource, node: Node, module: ItemPath) -> None:
        type_node = node.child_by_field_name("type")
        body = node.child_by_field_name("body")
        owner = _type_name(parsed, type_node)
        if owner is None or body is None:
            return
        self._impls.append(
            _PendingImpl(
                owner=module + (owner,),
                trait_impl=node.child_by_field_name("trait") is not None,
                body=body,
                parsed=parsed,
            )
        )

    def _apply_impl(self, pending: _PendingImpl) -> None:
        owners = [
            record for record in self.index.lookup_any(pending.owner) if record.kind in _OWNER_KINDS
        ]
        if not owners:
            return
        owner = owners[0]
        for member in pending.body.named_children:
            name = _field_text(pending.parsed, member, "name")
            if not name:
                continue
            if member.type == "function_item":
                kind = "method"
            elif member.type == "const_item":
                kind = "associatedconstant"
            elif member.type == "type_item" and pending.trait_impl:
                kind = "associatedtype"
            else:
                continue
            visible = owner.public and (pending.trait_impl or _is_public(pending.parsed, member))
            self._add_member(owner.key, owner.kind, name, kind, visible)

    def _apply_reexport(self, pending: _PendingReexport) -> None:
        target = self._normalise(pending.target, pending.module)
        if target is None:
            return
        for key in self.index.keys_under(target):
            alias_key = pending.alias + key[len(target) :]
            for record in self.index.lookup_any(key):
                if record.public:
                    location = record.location
                else:
                    location = pending.alias + record.location[len(target) :]
                self.index.add(
                    ItemRecord(
                        key=alias_key,
                        kind=record.kind,
                        location=location,
                        public=True,
                        owner_kind=record.owner_kind,
                    )
                )

    def _normalise(self, target: ItemPath, module: ItemPath) -> Optional[ItemPath]:
        if not target:
            return None
        head, rest = target[0], target[1:]
        if head == "crate":
            candidates = [rest]
        elif head == "self":
            candidates = [module + rest]
        elif head == "super":
            candidates = [module[:-1] + rest] if module else []
        else:
            candidates = [module + target, target]
        for candidate in candidates:
            if candidate and self.index.lookup_any(candidate):
                return candidate
        return None

    def _add(self, key: ItemPath, kind: str, *, public: bool) -> None:
        self.index.add(ItemRecord(key=key, kind=kind, location=key, public=public))

    def _add_member(
        self, owner: ItemPath, owner_kind: str, name: str, kind: str, public: bool
    ) -> None:
        key = owner + (name,)
        self.index.add(
            ItemRecord(key=key, kind=kind, location=key, public=public, owner_kind=owner_kind)
        )


def _field_text(parsed: ParsedSource, node: Node, field: str) -> Optional[str]:
    child = node.child_by_field_name(field)
    return parsed.text(child) if child is not None else None


def _is_public(parsed: ParsedSource, node: Node) -> bool:
    modifier = next(iter_children(node, "visibility_modifier"), None)
    return modifier is not None and parsed.text(modifier).replace(" ", "") == "pub"


def _trait_member_kind(node_type: str) -> Optional[str]:
    if node_type == "function_item":
        return "method"
    if node_type == "function_signature_item":
        return "tymethod"
    if node_type == "const_item":
        return "associatedconstant"
    if node_type == "associated_type":
        return "associatedtype"
    return None


def _type_name(parsed: ParsedSource, node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    if node.type == "type_identifier":
        return parsed.text(node)
    if node.type == "generic_type":
        return _type_name(parsed, node.child_by_field_name("type"))
    if node.type == "scoped_type_identifier":
        return _field_text(parsed, node, "name")
    return None


def _use_paths(parsed: ParsedSource, node: Node, prefix: ItemPath) -> List[Tuple[ItemPath, str]]:
    """Flatten a ``use`` tree into ``(target path, local name)`` pairs."""
    node_type = node.type
    if node_type in {"identifier", "scoped_identifier", "crate", "self", "super"}:
        segments = tuple(part.strip() for part in parsed.text(node).split("::") if part.strip())
        if segments == ("self",) and prefix:
            return [(prefix, prefix[-1])]
        full = prefix + segments
        return [(full, full[-1])] if full else []
    if node_type == "use_as_clause":
        path_node = node.child_by_field_name("path")
        alias = _field_text(parsed, node, "alias")
        if path_node is None or not alias:
            return []
        targets = _use_paths(parsed, path_node, prefix)
        return [(target, alias) for target, _ in targets[:1]]
    if node_type == "scoped_use_list":
        path_node = node.child_by_field_name("path")
        list_node = node.child_by_field_name("list")
        inner = prefix
        if path_node is not None:
            inner = prefix + tuple(
                part.strip() for part in parsed.text(path_node).split("::") if part.strip()
            )
        return _use_paths(parsed, list_node, inner) if list_node is not None else []
    if node_type == "use_list":
        pairs: List[Tuple[ItemPath, str]] = []
        for child in node.named_children:
            pairs.extend(_use_paths(parsed, child, prefix))
        return pairs
    return []


__all__ = ["CrateIndex", "ItemRecord", "SourceLoader"]
