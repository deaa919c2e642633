"""Configuration loading for docsync (.docsync.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from .errors import DocSyncError
from .models import FenceAction, HeadingShift, InsertionPoint, LineTerminator, LinkPolicy
from .postproc.markers import DEFAULT_END_MARKER, DEFAULT_START_MARKER

CONFIG_FILENAME = ".docsync.yml"

_E = TypeVar("_E", bound=Enum)


class ConfigError(DocSyncError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class EntrypointConfig:
    """Which source file holds the crate documentation."""

    path: Optional[Path] = None
    kind: Optional[str] = None
    bin_name: Optional[str] = None


@dataclass
class ReadmeConfig:
    """Target README and how the managed region is delimited."""

    path: Optional[Path] = None
    start_marker: str = DEFAULT_START_MARKER
    end_marker: str = DEFAULT_END_MARKER
    insertion_point: InsertionPoint = InsertionPoint.AFTER_TITLE
    line_terminator: LineTerminator = LineTerminator.AUTO


@dataclass
class HeadingConfig:
    offset: int = 1
    shift: HeadingShift = HeadingShift.AUTO
    strip_title: bool = False
    strip_badges: bool = False


@dataclass
class IntralinkConfig:
    on_unresolved: LinkPolicy = LinkPolicy.DROP_LABEL
    strip_links: bool = False
    docs_rs_base_url: str = "https://docs.rs"
    docs_rs_version: Optional[str] = None
    std_base_url: str = "https://doc.rust-lang.org/stable"


@dataclass
class CodeBlockConfig:
    language: str = "rust"
    attributes: Dict[str, FenceAction] = field(default_factory=dict)


@dataclass
class DocSyncConfig:
    """Represents the settings defined in .docsync.yml."""

    root: Path
    entrypoint: EntrypointConfig = field(default_factory=EntrypointConfig)
    readme: ReadmeConfig = field(default_factory=ReadmeConfig)
    headings: HeadingConfig = field(default_factory=HeadingConfig)
    intralinks: IntralinkConfig = field(default_factory=IntralinkConfig)
    code_blocks: CodeBlockConfig = field(default_factory=CodeBlockConfig)

    def with_overrides(
        self,
        *,
        entrypoint: Optional[Path] = None,
        bin_name: Optional[str] = None,
        readme: Optional[Path] = None,
        heading_offset: Optional[int] = None,
        strict: bool = False,
        line_terminator: Optional[str] = None,
    ) -> "DocSyncConfig":
        """Return a copy with command line flags applied on top of file values."""
        config = self
        if entrypoint is not None or bin_name is not None:
            config = replace(
                config,
                entrypoint=replace(
                    config.entrypoint,
                    path=entrypoint if entrypoint is not None else config.entrypoint.path,
                    bin_name=bin_name if bin_name is not None else config.entrypoint.bin_name,
                ),
            )
        if readme is not None or line_terminator is not None:
            config = replace(
                config,
                readme=replace(
                    config.readme,
                    path=readme if readme is not None else config.readme.path,
                    line_terminator=(
                        _as_enum(LineTerminator, line_terminator, "line_terminator")
                        if line_terminator is not None
                        else config.readme.line_terminator
                    ),
                ),
            )
        if heading_offset is not None:
            if heading_offset < 0:
                raise ConfigError("heading offset must not be negative")
            config = replace(config, headings=replace(config.headings, offset=heading_offset))
        if strict:
            config = replace(
                config, intralinks=replace(config.intralinks, on_unresolved=LinkPolicy.FAIL)
            )
        return config


def load_config(config_path: Path) -> DocSyncConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DocSyncConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    entry_data = _as_dict(data.get("entrypoint"))
    entry_path = _as_str(entry_data.get("path"))
    kind = _as_str(entry_data.get("type"))
    if kind is not None and kind not in {"lib", "bin"}:
        raise ConfigError(f"entrypoint.type must be 'lib' or 'bin', got {kind!r}")
    entrypoint = EntrypointConfig(
        path=Path(entry_path) if entry_path else None,
        kind=kind,
        bin_name=_as_str(entry_data.get("bin_name")),
    )

    readme_data = _as_dict(data.get("readme"))
    markers = _as_dict(readme_data.get("markers"))
    readme_path = _as_str(readme_data.get("path"))
    readme = ReadmeConfig(
        path=Path(readme_path) if readme_path else None,
        start_marker=_as_str(markers.get("start")) or DEFAULT_START_MARKER,
        end_marker=_as_str(markers.get("end")) or DEFAULT_END_MARKER,
        insertion_point=_as_enum(
            InsertionPoint, readme_data.get("insertion_point"), "readme.insertion_point"
        )
        or InsertionPoint.AFTER_TITLE,
        line_terminator=_as_enum(
            LineTerminator, readme_data.get("line_terminator"), "readme.line_terminator"
        )
        or LineTerminator.AUTO,
    )
    if readme.start_marker.strip() == readme.end_marker.strip():
        raise ConfigError("readme.markers.start and readme.markers.end must differ")

    heading_data = _as_dict(data.get("headings"))
    offset = _as_int(heading_data.get("offset"))
    if offset is not None and offset < 0:
        raise ConfigError("headings.offset must not be negative")
    headings = HeadingConfig(
        offset=1 if offset is None else offset,
        shift=_as_enum(HeadingShift, heading_data.get("shift"), "headings.shift") or HeadingShift.AUTO,
        strip_title=_as_bool(heading_data.get("strip_title")) or False,
        strip_badges=_as_bool(heading_data.get("strip_badges")) or False,
    )

    link_data = _as_dict(data.get("intralinks"))
    defaults = IntralinkConfig()
    intralinks = IntralinkConfig(
        on_unresolved=_as_enum(LinkPolicy, link_data.get("on_unresolved"), "intralinks.on_unresolved")
        or LinkPolicy.DROP_LABEL,
        strip_links=_as_bool(link_data.get("strip_links")) or False,
        docs_rs_base_url=_as_str(link_data.get("docs_rs_base_url")) or defaults.docs_rs_base_url,
        docs_rs_version=_as_version(link_data.get("docs_rs_version")),
        std_base_url=_as_str(link_data.get("std_base_url")) or defaults.std_base_url,
    )

    block_data = _as_dict(data.get("code_blocks"))
    attributes = {
        str(token): _as_enum(FenceAction, action, f"code_blocks.attributes.{token}")
        for token, action in _as_dict(block_data.get("attributes")).items()
    }
    code_blocks = CodeBlockConfig(
        language=_as_str(block_data.get("language")) or "rust",
        attributes={token: action for token, action in attributes.items() if action is not None},
    )

    return DocSyncConfig(
        root=root,
        entrypoint=entrypoint,
        readme=readme,
        headings=headings,
        intralinks=intralinks,
        code_blocks=code_blocks,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_version(value: Any) -> Optional[str]:
    # YAML reads 0.10 as the float 0.1, so only quoted scalars are trusted.
    if value is None or isinstance(value, str):
        return value
    raise ConfigError(f"intralinks.docs_rs_version must be a quoted string, got {value!r}")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"expected an integer, got {value!r}") from None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_enum(enum_type: Type[_E], value: Any, key: str) -> Optional[_E]:
    if value is None:
        return None
    try:
        return enum_type(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"{key} must be one of {choices}, got {value!r}") from None


__all__ = [
    "CONFIG_FILENAME",
    "CodeBlockConfig",
    "ConfigError",
    "DocSyncConfig",
    "EntrypointConfig",
    "HeadingConfig",
    "IntralinkConfig",
    "ReadmeConfig",
    "load_config",
]
