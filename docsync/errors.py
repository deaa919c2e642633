"""Exception hierarchy for docsync runs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from .models import LinkReference


class DocSyncError(RuntimeError):
    """Base class for fatal docsync failures."""


class ManifestError(DocSyncError):
    """Raised when Cargo.toml cannot be found, read or understood."""


class MissingEntryPointError(DocSyncError):
    """Raised when the package has no usable lib or bin entry file."""


class AmbiguousEntryPointError(MissingEntryPointError):
    """Raised when several binaries exist and none is the primary one."""

    def __init__(self, message: str, candidates: Sequence[str]) -> None:
        super().__init__(message)
        self.candidates = list(candidates)


class PathNotFoundError(DocSyncError):
    """Raised when an entry file path does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"source file not found: {path}")
        self.path = path


class ParseFailure(DocSyncError):
    """Raised when the entry source file is not valid Rust."""

    def __init__(
        self,
        path: Optional[Path],
        line: int,
        column: int,
        detail: str,
    ) -> None:
        location = f"{path}:{line}:{column}" if path is not None else f"{line}:{column}"
        super().__init__(f"cannot parse source file {location}: {detail}")
        self.path = path
        self.line = line
        self.column = column
        self.detail = detail


class UnresolvedLinkError(DocSyncError):
    """Raised under the strict link policy when intra-doc links do not resolve."""

    def __init__(self, links: Sequence[LinkReference]) -> None:
        described = ", ".join(
            f"`{link.raw.strip('`')}`" + (f" (line {link.line})" if link.line is not None else "")
            for link in links
        )
        super().__init__(f"unresolved intra-doc links: {described}")
        self.links = list(links)


class MalformedMarkersError(DocSyncError):
    """Raised when README markers are duplicated, unbalanced or out of order."""

    def __init__(self, reason: str, lines: Sequence[int] = ()) -> None:
        if lines:
            where = ", ".join(str(number + 1) for number in lines)
            message = f"malformed README markers: {reason} (lines {where})"
        else:
            message = f"malformed README markers: {reason}"
        super().__init__(message)
        self.reason = reason
        self.lines = list(lines)


__all__ = [
    "AmbiguousEntryPointError",
    "DocSyncError",
    "MalformedMarkersError",
    "ManifestError",
    "MissingEntryPointError",
    "ParseFailure",
    "PathNotFoundError",
    "UnresolvedLinkError",
]
