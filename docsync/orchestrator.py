"""Boundary layer: reads files, loads settings and hands results to the reporter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .cargo import find_manifest, load_package, locate_entry_file
from .config import DocSyncConfig, load_config
from .logging import get_logger, log_diagnostics
from .models import PackageDescriptor
from .pipeline import run_pipeline
from .reporter import ReportOutcome, Reporter


@dataclass
class SyncOptions:
    """Per-invocation settings coming from the command line."""

    check: bool = False
    dry_run: bool = False
    entrypoint: Optional[Path] = None
    bin_name: Optional[str] = None
    readme: Optional[Path] = None
    heading_offset: Optional[int] = None
    strict: bool = False
    line_terminator: Optional[str] = None


class Orchestrator:
    """Coordinates one sync or check run for a single package."""

    def __init__(self, reporter: Reporter | None = None) -> None:
        self.reporter = reporter or Reporter()
        self.logger = get_logger("orchestrator")

    def run(self, path: str | Path = ".", options: SyncOptions | None = None) -> ReportOutcome:
        """Sync (or check) the README of the package containing ``path``."""
        options = options or SyncOptions()
        start = Path(path).expanduser().resolve()
        manifest_path = find_manifest(start)
        package = load_package(manifest_path)
        self.logger.info("Syncing docs for package %s %s", package.name, package.version)

        config = self._load_config(package, options)
        source_path = locate_entry_file(
            package,
            config.entrypoint.path,
            bin_name=config.entrypoint.bin_name,
            kind=config.entrypoint.kind,
        )
        self.logger.debug("Reading crate docs from %s", source_path)
        source_text = _read_text(source_path)

        readme_path = self._readme_path(package, config)
        original = _read_text(readme_path) if readme_path.is_file() else ""
        if not original:
            self.logger.debug("README %s is missing or empty", readme_path)

        result = run_pipeline(
            package,
            source_path,
            source_text,
            original,
            config,
            load_source=_load_source,
        )
        log_diagnostics(result.diagnostics, self.logger)
        return self.reporter.report(
            result.merge,
            readme_path,
            original,
            check=options.check,
            dry_run=options.dry_run,
        )

    @staticmethod
    def _load_config(package: PackageDescriptor, options: SyncOptions) -> DocSyncConfig:
        config = load_config(package.directory)
        return config.with_overrides(
            entrypoint=options.entrypoint,
            bin_name=options.bin_name,
            readme=options.readme,
            heading_offset=options.heading_offset,
            strict=options.strict,
            line_terminator=options.line_terminator,
        )

    @staticmethod
    def _readme_path(package: PackageDescriptor, config: DocSyncConfig) -> Path:
        if config.readme.path is not None:
            path = config.readme.path
            return path if path.is_absolute() else package.directory / path
        if package.readme_path is not None:
            return package.readme_path
        return package.directory / "README.md"

    def log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def _read_text(path: Path) -> str:
    # newline="" so CRLF READMEs survive the round trip byte for byte.
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


def _load_source(path: Path) -> Optional[str]:
    try:
        return _read_text(path)
    except (OSError, UnicodeDecodeError):
        return None


__all__ = ["Orchestrator", "SyncOptions"]
