"""Entry source file selection for a Cargo package."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..errors import AmbiguousEntryPointError, MissingEntryPointError, PathNotFoundError
from ..logging import get_logger
from ..models import PackageDescriptor

logger = get_logger("cargo.locator")


def locate_entry_file(
    package: PackageDescriptor,
    override: Optional[Path] = None,
    *,
    bin_name: Optional[str] = None,
    kind: Optional[str] = None,
) -> Path:
    """Return the source file holding the crate-level documentation.

    An explicit ``override`` wins and is only checked for existence. Otherwise the
    library target is preferred; without one the package's sole (or primary)
    binary is used. ``kind="bin"`` or a ``bin_name`` skip the library.
    """
    if override is not None:
        path = override if override.is_absolute() else package.directory / override
        if not path.is_file():
            raise PathNotFoundError(path)
        logger.debug("Using entry file override %s", path)
        return path

    if bin_name is not None:
        return _checked(_named_bin(package, bin_name))

    if kind not in (None, "lib", "bin"):
        raise MissingEntryPointError(f"unknown entry point type {kind!r}; expected lib or bin")

    if kind != "bin" and package.lib_path is not None:
        logger.debug("Using library entry file %s", package.lib_path)
        return _checked(package.lib_path)

    if kind == "lib":
        raise MissingEntryPointError(f"package {package.name} has no library target")

    return _checked(_primary_bin(package))


def _named_bin(package: PackageDescriptor, bin_name: str) -> Path:
    path = package.bin_paths.get(bin_name)
    if path is None:
        available = ", ".join(sorted(package.bin_paths)) or "none"
        raise MissingEntryPointError(
            f"package {package.name} has no binary named {bin_name!r} (available: {available})"
        )
    return path


def _primary_bin(package: PackageDescriptor) -> Path:
    bins = package.bin_paths
    if not bins:
        raise MissingEntryPointError(
            f"package {package.name} has neither a library nor a binary target"
        )
    if len(bins) == 1:
        (path,) = bins.values()
        return path
    for preferred in (package.default_run, package.name):
        if preferred and preferred in bins:
            logger.debug("Using primary binary %s out of %d", preferred, len(bins))
            return bins[preferred]
    names = sorted(bins)
    raise AmbiguousEntryPointError(
        f"package {package.name} has several binaries ({', '.join(names)}) and no library; "
        "choose one with --bin or entrypoint.bin_name",
        names,
    )


def _checked(path: Path) -> Path:
    if not path.is_file():
        raise PathNotFoundError(path)
    return path


__all__ = ["locate_entry_file"]
