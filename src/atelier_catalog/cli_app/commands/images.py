"""Image command group."""

from __future__ import annotations

import argparse
from collections.abc import Awaitable, Callable
import mimetypes
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
from atelier_catalog.utils.errors import ValidationError


def register(subparsers: argparse._SubParsersAction) -> None:
    images_cmd = subparsers.add_parser("images", help="Item image operations")
    images_sub = images_cmd.add_subparsers(dest="subcommand", required=True)

    attach = images_sub.add_parser("attach", help="Attach an image file to an item")
    attach.add_argument("--collection", required=True, help="Collection id")
    attach.add_argument("--item", required=True, help="Item id")
    attach.add_argument("file", type=Path, help="Image file (PNG, JPEG, WebP, GIF)")
    add_output_arg(attach)

    clear = images_sub.add_parser("clear", help="Remove the image of an item")
    clear.add_argument("--collection", required=True, help="Collection id")
    clear.add_argument("--item", required=True, help="Item id")
    add_output_arg(clear)

    compress = images_sub.add_parser(
        "compress-all", help="Re-encode every stored image to shrink the catalog"
    )
    add_yes_arg(compress)
    add_output_arg(compress)


def _print_progress(done: int, total: int) -> None:
    print(f"\r  Compressing images: {done}/{total}", end="", file=sys.stderr, flush=True)
    if done == total:
        print(file=sys.stderr)


def run(args: argparse.Namespace) -> int:
    service = build_catalog_service()
    confirm = confirmation(args)

    async def _attach() -> dict[str, Any]:
        path: Path = args.file.expanduser()
        if not path.is_file():
            raise ValidationError(f"Image file not found: {path}")
        content_type, _ = mimetypes.guess_type(path.name)
        updated = await service.attach_image(
            args.collection, args.item, path.read_bytes(), content_type
        )
        item = updated.find_item(args.item)
        return {
            "success": True,
            "collection": updated.id,
            "item": args.item,
            "size": len(item.image_url or "") if item else 0,
        }

    async def _clear() -> dict[str, Any]:
        await service.clear_image(args.collection, args.item)
        return {"success": True, "collection": args.collection, "item": args.item}

    async def _compress_all() -> dict[str, Any]:
        if not confirm("Re-encode every stored image? Originals are replaced."):
            return {"success": False, "cancelled": True}
        show_progress = args.output == "text"
        report = await service.compress_all(_print_progress if show_progress else None)
        return {
            "success": report.failed == 0,
            "total": report.total,
            "compressed": report.compressed,
            "failed": report.failed,
            "bytes_before": report.bytes_before,
            "bytes_after": report.bytes_after,
            "saved": f"{report.saved_ratio:.0%}",
            "errors": report.errors,
        }

    handlers: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {
        "attach": _attach,
        "clear": _clear,
        "compress-all": _compress_all,
    }

    handler = handlers.get(args.subcommand)
    if handler is None:
        raise ValueError(f"Unknown images subcommand: {args.subcommand}")

    payload = run_handler(handler, f"images {args.subcommand}")
    emit(args, payload)
    return exit_code(payload)


__all__ = ["register", "run"]
