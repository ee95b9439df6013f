"""CLI parser and dispatch registry."""

from __future__ import annotations

import argparse
from collections.abc import Callable

from atelier_catalog import __version__
from atelier_catalog.cli_app.commands import backup, collections, images, sync

CommandRunner = Callable[[argparse.Namespace], int]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atelier",
        description="Local image catalog with gist-backed backup",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    registrars: tuple[Callable[[argparse._SubParsersAction], None], ...] = (
        collections.register,
        images.register,
        backup.register,
        sync.register,
    )
    for register in registrars:
        register(subparsers)

    return parser


def dispatch(args: argparse.Namespace) -> int:
    command_handlers: dict[str, CommandRunner] = {
        "collections": collections.run,
        "images": images.run,
        "backup": backup.run,
        "sync": sync.run,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        raise ValueError(f"Unknown command: {args.command}")
    return handler(args)
