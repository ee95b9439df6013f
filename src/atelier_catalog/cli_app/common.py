"""Shared argument helpers and service factories for CLI commands."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from atelier_catalog.clients.credentials import FileCredentialStore
from atelier_catalog.clients.gist_client import GistClient
from atelier_catalog.clients.local_store import LocalStore
from atelier_catalog.services.catalog_service import CatalogService
from atelier_catalog.services.sync_service import SyncService
from atelier_catalog.settings import AtelierSettings, get_settings
from atelier_catalog.utils.errors import AtelierError, handle_error
from atelier_catalog.utils.image_codec import ImageCodec


def add_output_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )


def add_yes_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Do not ask for confirmation",
    )


def confirmation(args: argparse.Namespace) -> Callable[[str], bool]:
    """Interactive yes/no prompt, skipped when --yes was given."""

    def _confirm(prompt: str) -> bool:
        if getattr(args, "yes", False):
            return True
        try:
            answer = input(f"{prompt} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    return _confirm


def build_catalog_service(settings: AtelierSettings | None = None) -> CatalogService:
    settings = settings or get_settings()
    codec = ImageCodec(
        max_width=settings.image_max_width,
        quality=settings.image_quality,
        background=settings.background_rgb,
    )
    return CatalogService(
        LocalStore(settings.database_path),
        codec=codec,
        default_item_count=settings.default_item_count,
    )


def build_gist_client(settings: AtelierSettings | None = None) -> GistClient:
    settings = settings or get_settings()
    return GistClient(api_base=settings.api_base, timeout=settings.request_timeout)


def build_sync_service(
    client: GistClient,
    settings: AtelierSettings | None = None,
) -> SyncService:
    settings = settings or get_settings()
    return SyncService(client, FileCredentialStore(settings.credentials_file), settings)


def run_handler(
    handler: Callable[[], Awaitable[dict[str, Any]]],
    operation: str,
) -> dict[str, Any]:
    """Run an async command handler, turning domain errors into an error payload."""
    try:
        return asyncio.run(handler())
    except AtelierError as e:
        return {"success": False, "error": handle_error(e, operation)}


def exit_code(payload: Any) -> int:
    if not isinstance(payload, dict):
        return 0
    if payload.get("error"):
        return 1
    if payload.get("success") is False:
        return 1
    return 0
