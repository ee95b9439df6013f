"""Remote sync command group."""

from __future__ import annotations

import argparse
from collections.abc import Awaitable, Callable
import getpass
import os
from typing import Any

from atelier_catalog.cli_app.common import (
    add_output_arg,
    add_yes_arg,
    build_catalog_service,
    build_gist_client,
    build_sync_service,
    confirmation,
    exit_code,
    run_handler,
)
from atelier_catalog.cli_app.output import emit
from atelier_catalog.utils.errors import AuthError

TOKEN_ENV_VAR = "ATELIER_GITHUB_TOKEN"


def register(subparsers: argparse._SubParsersAction) -> None:
    sync_cmd = subparsers.add_parser("sync", help="Backup to and restore from a private gist")
    sync_sub = sync_cmd.add_subparsers(dest="subcommand", required=True)

    login = sync_sub.add_parser("login", help="Validate and store a GitHub token")
    login.add_argument(
        "--token",
        default=None,
        help=f"Token with the 'gist' scope (default: ${TOKEN_ENV_VAR} or prompt)",
    )
    add_output_arg(login)

    logout = sync_sub.add_parser("logout", help="Forget the token and cached backup id")
    add_output_arg(logout)

    status = sync_sub.add_parser("status", help="Show login state and last backup time")
    add_output_arg(status)

    upload = sync_sub.add_parser("upload", help="Overwrite the remote backup with the local catalog")
    add_output_arg(upload)

    download = sync_sub.add_parser(
        "download", help="Replace the local catalog with the remote backup"
    )
    add_yes_arg(download)
    add_output_arg(download)


def run(args: argparse.Namespace) -> int:
    catalog = build_catalog_service()
    confirm = confirmation(args)

    async def _login() -> dict[str, Any]:
        token = args.token or os.getenv(TOKEN_ENV_VAR)
        if not token:
            try:
                token = getpass.getpass("GitHub token: ")
            except EOFError:
                raise AuthError("No token given") from None
        async with build_gist_client() as client:
            login = await build_sync_service(client).login(token)
        return {"success": True, "login": login}

    async def _logout() -> dict[str, Any]:
        async with build_gist_client() as client:
            build_sync_service(client).logout()
        return {"success": True}

    async def _status() -> dict[str, Any]:
        async with build_gist_client() as client:
            sync = build_sync_service(client)
            last = await sync.last_synced_at()
            return {
                "logged_in": sync.is_logged_in,
                "gist_id": sync.remote_id,
                "last_synced_at": last.isoformat() if last else None,
                "local_collections": await catalog.store.count(),
            }

    async def _upload() -> dict[str, Any]:
        async with build_gist_client() as client:
            sync = build_sync_service(client)
            count = await catalog.backup_to_remote(sync)
            return {"success": True, "uploaded": count, "gist_id": sync.remote_id}

    async def _download() -> dict[str, Any]:
        async with build_gist_client() as client:
            result = await catalog.restore_from_remote(build_sync_service(client), confirm)
        if result.status == "empty":
            return {"success": True, "restored": 0, "message": "No remote backup yet"}
        if result.status == "cancelled":
            return {"success": False, "cancelled": True}
        return {"success": True, "restored": result.count}

    handlers: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {
        "login": _login,
        "logout": _logout,
        "status": _status,
        "upload": _upload,
        "download": _download,
    }

    handler = handlers.get(args.subcommand)
    if handler is None:
        raise ValueError(f"Unknown sync subcommand: {args.subcommand}")

    payload = run_handler(handler, f"sync {args.subcommand}")
    emit(args, payload)
    return exit_code(payload)


__all__ = ["register", "run"]
