"""CLI entrypoints for labdocs commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import fields
from pathlib import Path
from typing import List, Optional

from .config import (
    ConfigError,
    LabdocsConfig,
    build_checkpoint,
    build_discovery_options,
    build_source,
    build_writer_options,
    load_config,
)
from .discovery import MODES, DiscoveryOptions
from .errors import LabdocsError
from .header import parse_header
from .logging import configure_logging, get_logger
from .reader import ReaderOptions, read_documents
from .render import TemplateRenderer
from .stores import CheckpointStore, FileCheckpoint, MemoryCheckpoint
from .writer import Writer

logger = get_logger("cli")

_CHANGED_MODES = ("changed", "triggered")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else Path("."),
        help="Path to .labdocs.yml or the directory holding it (defaults to current directory).",
    )


def _add_log_file_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write detailed logs to this file.",
    )


def _add_mode_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mode",
        choices=sorted(MODES),
        default=None,
        help="Discovery mode (defaults to source.mode from the config file).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not advance the stored checkpoint or create commits.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labdocs",
        description="Discover, render and publish documents stored in GitLab repositories.",
    )
    _add_verbose_option(parser)
    _add_config_option(parser)
    _add_log_file_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser(
        "list",
        help="Print the repository files a run would process.",
    )
    _add_verbose_option(list_parser, suppress_default=True)
    _add_config_option(list_parser, suppress_default=True)
    _add_log_file_option(list_parser, suppress_default=True)
    _add_mode_options(list_parser)

    publish_parser = subparsers.add_parser(
        "publish",
        help="Render discovered files and commit them to the output repository.",
    )
    _add_verbose_option(publish_parser, suppress_default=True)
    _add_config_option(publish_parser, suppress_default=True)
    _add_log_file_option(publish_parser, suppress_default=True)
    _add_mode_options(publish_parser)

    checkpoint_parser = subparsers.add_parser(
        "checkpoint",
        help="Inspect or reset the stored checkpoint.",
    )
    _add_verbose_option(checkpoint_parser, suppress_default=True)
    _add_config_option(checkpoint_parser, suppress_default=True)
    _add_log_file_option(checkpoint_parser, suppress_default=True)
    checkpoint_parser.add_argument("action", choices=("show", "reset"))

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for labdocs commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "checkpoint":
        _run_checkpoint(config, args.action)
        return

    try:
        if args.command == "list":
            paths = asyncio.run(_list(config, args.mode, dry_run=bool(args.dry_run)))
            for path in paths:
                print(path)
        elif args.command == "publish":
            written = asyncio.run(_publish(config, args.mode, dry_run=bool(args.dry_run)))
            suffix = " (dry-run)" if args.dry_run else ""
            print(f"{len(written)} documents written{suffix}")
            for path in written:
                print(path)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except LabdocsError as exc:
        parser.exit(1, f"labdocs {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_checkpoint(config: LabdocsConfig, action: str) -> None:
    store = build_checkpoint(config)
    if action == "show":
        commit = store.get()
        print(commit if commit else f"No checkpoint recorded for {store.key}")
        return
    if store.reset():
        print(f"Checkpoint {store.key} reset")
    else:
        print(f"No checkpoint recorded for {store.key}")


def _storage(config: LabdocsConfig, mode: str, *, dry_run: bool) -> Optional[CheckpointStore]:
    if mode not in _CHANGED_MODES:
        return None
    store: FileCheckpoint = build_checkpoint(config)
    if dry_run:
        return MemoryCheckpoint(store.get())
    return store


async def _list(config: LabdocsConfig, mode: Optional[str], *, dry_run: bool) -> List[str]:
    mode_name = mode or config.source.mode
    options = build_discovery_options(config, _storage(config, mode_name, dry_run=dry_run))
    async with build_source(config) as source:
        return [path async for path in MODES[mode_name](source, options)]


async def _publish(config: LabdocsConfig, mode: Optional[str], *, dry_run: bool) -> List[str]:
    mode_name = mode or config.source.mode
    # Discovery advances a staged copy; the stored checkpoint only moves once
    # the commit has landed.
    store = build_checkpoint(config) if mode_name in _CHANGED_MODES else None
    staged = MemoryCheckpoint(store.get()) if store is not None else None
    discovery = build_discovery_options(config, staged)
    reader_options = ReaderOptions(
        **{item.name: getattr(discovery, item.name) for item in fields(DiscoveryOptions)},
        mode=MODES[mode_name],
        parser=parse_header(),
        host=config.gitlab.host,
    )
    renderer = TemplateRenderer(config.output.templates_dir)
    writer_options = build_writer_options(config, renderer)

    written: List[str] = []
    async with build_source(config) as source:
        writer = Writer(source, writer_options)
        async for document in read_documents(source, reader_options):
            path = await writer.write(document)
            if path is not None:
                written.append(path)
        if dry_run:
            writer.registry.drop(writer.key)
            logger.info("Dry run, %d documents not committed", len(written))
            return written
        await writer.teardown()

    if store is not None and staged is not None and staged.history:
        store.set(staged.history[-1])
    return written


if __name__ == "__main__":
    main(sys.argv[1:])
