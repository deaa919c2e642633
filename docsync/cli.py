"""CLI entrypoints for docsync commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import DocSyncError
from .logging import configure_logging
from .orchestrator import Orchestrator, SyncOptions
from .reporter import ReportStatus


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    _add_verbose_option(parser, suppress_default=True)
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path inside the Cargo package (defaults to current directory).",
    )
    parser.add_argument(
        "--entrypoint",
        type=Path,
        help="Source file to read the crate documentation from.",
    )
    parser.add_argument(
        "--bin",
        dest="bin_name",
        help="Read the documentation of the named binary target.",
    )
    parser.add_argument("--readme", type=Path, help="README file to keep in sync.")
    parser.add_argument(
        "--heading-offset",
        type=int,
        help="Number of levels extracted headings are pushed down.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when an intra-doc link cannot be resolved.",
    )
    parser.add_argument(
        "--line-terminator",
        choices=("auto", "lf", "crlf"),
        help="Line endings used for the managed region.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Keep a crate's README in sync with its crate-level documentation.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync",
        help="Write the crate documentation into the README.",
    )
    _add_common_options(sync_parser)
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview README changes without writing them.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Exit with status 2 when the README is out of sync.",
    )
    _add_common_options(check_parser)
    check_parser.add_argument(
        "--diff",
        action="store_true",
        help="Print the changes a sync would make.",
    )

    return parser


def _options_from_args(args: argparse.Namespace) -> SyncOptions:
    return SyncOptions(
        check=args.command == "check",
        dry_run=bool(getattr(args, "dry_run", False)),
        entrypoint=args.entrypoint.resolve() if args.entrypoint else None,
        bin_name=args.bin_name,
        readme=args.readme.resolve() if args.readme else None,
        heading_offset=args.heading_offset,
        strict=bool(args.strict),
        line_terminator=args.line_terminator,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docsync commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    orchestrator = Orchestrator()
    options = _options_from_args(args)
    try:
        outcome = orchestrator.run(args.path, options)
    except DocSyncError as exc:
        parser.exit(1, f"docsync {args.command} failed: {exc}\n")
    except (OSError, ValueError) as exc:
        orchestrator.log_exception("Unexpected I/O failure", exc)
        parser.exit(1, f"docsync {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    rel_path = _relativize(outcome.path)
    if outcome.status is ReportStatus.FAILED:
        parser.exit(outcome.status.exit_code, f"docsync {args.command} failed: {outcome.error}\n")
    elif outcome.status is ReportStatus.UP_TO_DATE:
        print(f"{rel_path} is up to date")
    elif outcome.status is ReportStatus.WRITTEN:
        print(f"README updated at {rel_path}")
    elif outcome.status is ReportStatus.PREVIEW:
        print("README changes (dry-run):")
        print(outcome.diff or "(no diff)")
    elif outcome.status is ReportStatus.MISMATCH:
        if getattr(args, "diff", False):
            print(outcome.diff)
        parser.exit(outcome.status.exit_code, f"{rel_path} is out of sync; run `docsync sync`\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
