"""Core data models shared across docsync components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Tuple


class DocStyle(Enum):
    """Source form a documentation line was written in."""

    LINE = "line"
    BLOCK = "block"
    ATTRIBUTE = "attribute"


class FenceAction(Enum):
    """What to do with a rustdoc code fence attribute."""

    DROP_BLOCK = "drop-block"
    STRIP = "strip"
    KEEP = "keep"


class LinkPolicy(Enum):
    """Behaviour when an intra-doc link cannot be resolved."""

    DROP_LABEL = "drop-label"
    FAIL = "fail"


class InsertionPoint(Enum):
    """Where the managed block goes when the README has no markers yet."""

    TOP = "top"
    BOTTOM = "bottom"
    AFTER_TITLE = "after-title"


class HeadingShift(Enum):
    """When extracted headings are pushed down a level."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class LineTerminator(Enum):
    AUTO = "auto"
    LF = "lf"
    CRLF = "crlf"


class MergeStatus(Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    ERROR = "error"


@dataclass(frozen=True)
class PackageRef:
    """Name and version of a crate that links may point into."""

    name: str
    version: str
    crate_name: str


@dataclass(frozen=True)
class PackageDescriptor:
    """Normalized view of a Cargo package, built once per invocation."""

    name: str
    version: str
    manifest_path: Path
    lib_path: Optional[Path] = None
    lib_name: Optional[str] = None
    bin_paths: Mapping[str, Path] = field(default_factory=dict)
    default_run: Optional[str] = None
    readme_path: Optional[Path] = None
    workspace_members: Tuple[PackageRef, ...] = ()
    dependencies: Tuple[PackageRef, ...] = ()

    @property
    def directory(self) -> Path:
        return self.manifest_path.parent

    @property
    def crate_name(self) -> str:
        """Identifier the crate is imported as."""
        return self.lib_name or self.name.replace("-", "_")

    def find_package(self, crate_name: str) -> Optional[PackageRef]:
        """Return the workspace member or dependency imported as ``crate_name``."""
        for ref in (*self.workspace_members, *self.dependencies):
            if ref.crate_name == crate_name and ref.name != self.name:
                return ref
        return None


@dataclass(frozen=True)
class DocLine:
    """One line of crate documentation and where it came from."""

    text: str
    line: int
    style: DocStyle


@dataclass(frozen=True)
class DocBlock:
    """Ordered documentation lines attached to the crate root."""

    lines: Tuple[DocLine, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


@dataclass(frozen=True)
class LinkReference:
    """Symbolic path to another documented item found in doc text."""

    raw: str
    path: Tuple[str, ...]
    disambiguator: Optional[str]
    label: str
    line: Optional[int] = None

    @property
    def dotted(self) -> str:
        return "::".join(self.path)


@dataclass(frozen=True)
class MarkerSpan:
    """Location of a well-formed marker pair inside README text.

    ``start_line``/``end_line`` are zero-based line indexes of the marker lines;
    ``content_start``/``content_end`` are character offsets of the text strictly
    between them.
    """

    start_line: int
    end_line: int
    content_start: int
    content_end: int


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal issue reported alongside a successful run."""

    kind: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging rendered documentation into README text."""

    status: MergeStatus
    text: Optional[str] = None
    content: str = ""
    error: Optional[Exception] = None

    @property
    def changed(self) -> bool:
        return self.status is MergeStatus.UPDATED
