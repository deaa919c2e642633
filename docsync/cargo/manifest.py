"""Cargo.toml loading into a :class:`PackageDescriptor`."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ManifestError
from ..logging import get_logger
from ..models import PackageDescriptor, PackageRef

MANIFEST_NAME = "Cargo.toml"

_PLAIN_VERSION = re.compile(r"^[=^]?\s*(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?)$")
_DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")

logger = get_logger("cargo.manifest")


def find_manifest(start: Path) -> Path:
    """Return the first Cargo.toml found in ``start`` or any of its ancestors."""
    start = start.expanduser().resolve()
    if start.is_file():
        if start.name == MANIFEST_NAME:
            return start
        start = start.parent
    for directory in (start, *start.parents):
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    raise ManifestError(f"could not find {MANIFEST_NAME} in {start} or any parent directory")


def load_package(manifest_path: Path) -> PackageDescriptor:
    """Build a package descriptor from a package manifest."""
    manifest_path = manifest_path.expanduser().resolve()
    data = _read_manifest(manifest_path)
    package = _as_dict(data.get("package"))
    if not package:
        raise ManifestError(
            f"{manifest_path} has no [package] table; point docsync at a workspace member"
        )

    name = _as_str(package.get("name"))
    if not name:
        raise ManifestError(f"{manifest_path} does not declare package.name")

    directory = manifest_path.parent
    workspace_root, workspace = _find_workspace(manifest_path, data, package)
    workspace_package = _as_dict(_as_dict(workspace.get("workspace")).get("package"))

    version = _as_str(_inherit(package.get("version"), workspace_package, "version")) or "0.0.0"

    lib_table = _as_dict(data.get("lib"))
    lib_path = _lib_path(directory, lib_table)
    lib_name = _as_str(lib_table.get("name"))

    readme_value = _inherit(package.get("readme"), workspace_package, "readme")
    readme_base = directory
    if _is_inherited(package.get("readme")) and workspace_root is not None:
        readme_base = workspace_root.parent
    readme_path = _readme_path(readme_base, readme_value)

    members: Tuple[PackageRef, ...] = ()
    if workspace_root is not None:
        members = tuple(_workspace_members(workspace_root, workspace))

    descriptor = PackageDescriptor(
        name=name,
        version=version,
        manifest_path=manifest_path,
        lib_path=lib_path,
        lib_name=lib_name,
        bin_paths=_bin_paths(directory, name, data, package),
        default_run=_as_str(package.get("default-run")),
        readme_path=readme_path,
        workspace_members=members,
        dependencies=tuple(_dependencies(data, workspace)),
    )
    logger.debug(
        "Loaded package %s %s (lib=%s, bins=%s, members=%d, deps=%d)",
        descriptor.name,
        descriptor.version,
        descriptor.lib_path,
        sorted(descriptor.bin_paths),
        len(descriptor.workspace_members),
        len(descriptor.dependencies),
    )
    return descriptor


def _read_manifest(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"failed to read manifest \"{path}\"") from exc
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"failed to parse manifest \"{path}\": {exc}") from exc


def _find_workspace(
    manifest_path: Path, data: Dict[str, Any], package: Dict[str, Any]
) -> Tuple[Optional[Path], Dict[str, Any]]:
    if "workspace" in data:
        return manifest_path, data

    explicit = _as_str(package.get("workspace"))
    if explicit:
        candidate = (manifest_path.parent / explicit).resolve()
        if candidate.is_dir():
            candidate = candidate / MANIFEST_NAME
        if candidate.is_file():
            return candidate, _read_manifest(candidate)

    for directory in manifest_path.parent.parents:
        candidate = directory / MANIFEST_NAME
        if not candidate.is_file():
            continue
        try:
            candidate_data = _read_manifest(candidate)
        except ManifestError as exc:
            logger.debug("Ignoring unreadable ancestor manifest: %s", exc)
            continue
        if "workspace" in candidate_data:
            return candidate, candidate_data
    return None, {}


def _workspace_members(root_manifest: Path, workspace: Dict[str, Any]) -> List[PackageRef]:
    root = root_manifest.parent
    table = _as_dict(workspace.get("workspace"))
    workspace_package = _as_dict(table.get("package"))
    excluded = {(root / item).resolve() for item in _as_str_list(table.get("exclude"))}

    manifests: List[Path] = []
    if "package" in workspace:
        manifests.append(root_manifest)
    for pattern in _as_str_list(table.get("members")):
        try:
            directories = [root] if pattern in {".", "./"} else sorted(root.glob(pattern))
        except ValueError as exc:
            logger.debug("Ignoring workspace member pattern %r: %s", pattern, exc)
            continue
        for directory in directories:
            candidate = directory / MANIFEST_NAME
            if directory.resolve() in excluded or not candidate.is_file():
                continue
            candidate = candidate.resolve()
            if candidate not in manifests:
                manifests.append(candidate)

    members: List[PackageRef] = []
    for manifest in manifests:
        try:
            member_data = _read_manifest(manifest)
        except ManifestError as exc:
            logger.debug("Skipping workspace member: %s", exc)
            continue
        member_package = _as_dict(member_data.get("package"))
        member_name = _as_str(member_package.get("name"))
        if not member_name:
            continue
        member_version = _as_str(
            _inherit(member_package.get("version"), workspace_package, "version")
        )
        lib_name = _as_str(_as_dict(member_data.get("lib")).get("name"))
        members.append(
            PackageRef(
                name=member_name,
                version=member_version or "latest",
                crate_name=lib_name or member_name.replace("-", "_"),
            )
        )
    return members


def _dependencies(data: Dict[str, Any], workspace: Dict[str, Any]) -> List[PackageRef]:
    workspace_deps = _as_dict(_as_dict(workspace.get("workspace")).get("dependencies"))

    tables: List[Dict[str, Any]] = [_as_dict(data.get(key)) for key in _DEPENDENCY_TABLES]
    for target in _as_dict(data.get("target")).values():
        target_table = _as_dict(target)
        tables.extend(_as_dict(target_table.get(key)) for key in _DEPENDENCY_TABLES)

    seen: Dict[str, PackageRef] = {}
    for table in tables:
        for key, spec in table.items():
            if key in seen:
                continue
            detail = _dependency_detail(spec)
            if detail.get("workspace") is True:
                inherited = _dependency_detail(workspace_deps.get(key))
                detail = {**inherited, **{k: v for k, v in detail.items() if k != "workspace"}}
            package_name = _as_str(detail.get("package")) or key
            seen[key] = PackageRef(
                name=package_name,
                version=_pinned_version(_as_str(detail.get("version"))),
                crate_name=key.replace("-", "_"),
            )
    return list(seen.values())


def _dependency_detail(spec: Any) -> Dict[str, Any]:
    if isinstance(spec, str):
        return {"version": spec}
    return dict(spec) if isinstance(spec, dict) else {}


def _pinned_version(requirement: Optional[str]) -> str:
    if not requirement:
        return "latest"
    match = _PLAIN_VERSION.match(requirement.strip())
    return match.group(1) if match else "latest"


def _lib_path(directory: Path, lib_table: Dict[str, Any]) -> Optional[Path]:
    declared = _as_str(lib_table.get("path"))
    if declared:
        return directory / declared
    default = directory / "src" / "lib.rs"
    return default if default.is_file() else None


def _bin_paths(
    directory: Path,
    package_name: str,
    data: Dict[str, Any],
    package: Dict[str, Any],
) -> Dict[str, Path]:
    bins: Dict[str, Path] = {}
    if package.get("autobins", True) is not False:
        main = directory / "src" / "main.rs"
        if main.is_file():
            bins[package_name] = main
        bin_dir = directory / "src" / "bin"
        if bin_dir.is_dir():
            for entry in sorted(bin_dir.iterdir()):
                if entry.is_file() and entry.suffix == ".rs":
                    bins[entry.stem] = entry
                elif entry.is_dir() and (entry / "main.rs").is_file():
                    bins[entry.name] = entry / "main.rs"

    bin_entries = data.get("bin")
    if isinstance(bin_entries, list):
        for entry in bin_entries:
            table = _as_dict(entry)
            name = _as_str(table.get("name"))
            if not name:
                continue
            declared = _as_str(table.get("path"))
            if declared:
                bins[name] = directory / declared
            elif name not in bins:
                bins[name] = _default_bin_path(directory, name, package_name)
    return bins


def _default_bin_path(directory: Path, name: str, package_name: str) -> Path:
    if name == package_name:
        return directory / "src" / "main.rs"
    nested = directory / "src" / "bin" / name / "main.rs"
    if nested.is_file():
        return nested
    return directory / "src" / "bin" / f"{name}.rs"


def _readme_path(base: Path, value: Any) -> Optional[Path]:
    if value is False:
        return None
    if isinstance(value, str) and value:
        return base / value
    return None


def _is_inherited(value: Any) -> bool:
    return isinstance(value, dict) and value.get("workspace") is True


def _inherit(value: Any, workspace_package: Dict[str, Any], key: str) -> Any:
    if _is_inherited(value):
        return workspace_package.get(key)
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


__all__ = ["MANIFEST_NAME", "find_manifest", "load_package"]
