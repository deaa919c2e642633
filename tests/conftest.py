from __future__ import annotations

from pathlib import Path

import pytest

from docsync.models import PackageDescriptor
from tests._fixtures.crate_builder import CrateBuilder


@pytest.fixture
def crate_builder(tmp_path: Path) -> CrateBuilder:
    """Provide a reusable crate builder rooted at the pytest tmp_path."""
    return CrateBuilder(tmp_path)


@pytest.fixture
def package(tmp_path: Path) -> PackageDescriptor:
    """A descriptor for link resolution tests that never touches the disk."""
    return PackageDescriptor(
        name="demo-crate",
        version="1.2.3",
        manifest_path=tmp_path / "Cargo.toml",
        lib_path=tmp_path / "src" / "lib.rs",
    )
