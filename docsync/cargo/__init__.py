"""Cargo package metadata and entry file lookup."""

from .locator import locate_entry_file
from .manifest import MANIFEST_NAME, find_manifest, load_package

__all__ = ["MANIFEST_NAME", "find_manifest", "load_package", "locate_entry_file"]
