"""Backup file command group."""

from __future__ import annotations

import argparse
from collections.abc import Awaitable, Callable
from pathlib import Path
import sys
from typing import Any

from atelier_catalog.cli_app.common import (
    add_output_arg,
    add_yes_arg,
    build_catalog_service,
    confirmation,
    exit_code,
    run_handler,
)
from atelier_catalog.cli_app.output import emit
from atelier_catalog.models.enums import ImportPolicy
from atelier_catalog.utils.errors import ValidationError


def register(subparsers: argparse._SubParsersAction) -> None:
    backup_cmd = subparsers.add_parser("backup", help="Export and import catalog files")
    backup_sub = backup_cmd.add_subparsers(dest="subcommand", required=True)

    export = backup_sub.add_parser("export", help="Write the catalog to a dated JSON file")
    export.add_argument(
        "--directory",
        type=Path,
        default=Path("."),
        help="Directory for atelier-backup-YYYY-MM-DD.json (default: current)",
    )
    export.add_argument(
        "--stdout",
        action="store_true",
        help="Print the JSON document instead of writing a file",
    )
    add_output_arg(export)

    import_cmd = backup_sub.add_parser("import", help="Load a catalog from a JSON file")
    import_cmd.add_argument("file", type=Path, help="Exported catalog file")
    import_cmd.add_argument(
        "--policy",
        choices=[policy.value for policy in ImportPolicy],
        default=ImportPolicy.MERGE.value,
        help="restore: replace the whole catalog; merge: overwrite by id (default: merge)",
    )
    add_yes_arg(import_cmd)
    add_output_arg(import_cmd)


def run(args: argparse.Namespace) -> int:
    service = build_catalog_service()
    confirm = confirmation(args)

    async def _export() -> dict[str, Any]:
        if args.stdout:
            sys.stdout.write(await service.export_catalog() + "\n")
            return {}
        path = await service.export_to_file(args.directory)
        return {"success": True, "path": str(path)}

    async def _import() -> dict[str, Any]:
        path: Path = args.file.expanduser()
        if not path.is_file():
            raise ValidationError(f"Import file not found: {path}")
        policy = ImportPolicy(args.policy)
        if policy is ImportPolicy.RESTORE and not confirm(
            "Replace the whole local catalog with the file contents?"
        ):
            return {"success": False, "cancelled": True}
        count = await service.import_catalog(path.read_bytes(), policy)
        return {"success": True, "policy": policy.value, "imported": count}

    handlers: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {
        "export": _export,
        "import": _import,
    }

    handler = handlers.get(args.subcommand)
    if handler is None:
        raise ValueError(f"Unknown backup subcommand: {args.subcommand}")

    payload = run_handler(handler, f"backup {args.subcommand}")
    if payload:
        emit(args, payload)
    return exit_code(payload)


__all__ = ["register", "run"]
