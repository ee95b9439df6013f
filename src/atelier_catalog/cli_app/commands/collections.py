"""Collection command group."""

from __future__ import annotations

import argparse
from collections.abc import Awaitable, Callable
from typing import Any

from atelier_catalog.cli_app.common import (
    add_output_arg,
    build_catalog_service,
    exit_code,
    run_handler,
)
from atelier_catalog.cli_app.output import emit
from atelier_catalog.models.catalog import Collection
from atelier_catalog.services.reorder import CollectionReorder


def summarize(collection: Collection) -> dict[str, Any]:
    return {
        "id": collection.id,
        "order": collection.order,
        "title": collection.title,
        "series": collection.series,
        "status": collection.status.value,
        "type": collection.kind.value,
        "items": len(collection.items),
        "images": collection.image_count(),
    }


def register(subparsers: argparse._SubParsersAction) -> None:
    collections_cmd = subparsers.add_parser("collections", help="Collection operations")
    collections_sub = collections_cmd.add_subparsers(dest="subcommand", required=True)

    list_cmd = collections_sub.add_parser("list", help="List collections in listing order")
    add_output_arg(list_cmd)

    create = collections_sub.add_parser("create", help="Create a collection at the top")
    create.add_argument("--series", default="", help="Series name")
    create.add_argument(
        "--items",
        type=int,
        default=None,
        help="Number of empty items (default: ATELIER_DEFAULT_ITEM_COUNT)",
    )
    add_output_arg(create)

    show = collections_sub.add_parser("show", help="Show one collection with its items")
    show.add_argument("--id", required=True, dest="collection_id")
    add_output_arg(show)

    delete = collections_sub.add_parser("delete", help="Delete a collection")
    delete.add_argument("--id", required=True, dest="collection_id")
    add_output_arg(delete)

    swap = collections_sub.add_parser("swap", help="Swap the positions of two collections")
    swap.add_argument("first", help="Collection id")
    swap.add_argument("second", help="Collection id")
    add_output_arg(swap)

    resize = collections_sub.add_parser("resize", help="Change the number of items")
    resize.add_argument("--id", required=True, dest="collection_id")
    resize.add_argument("--count", type=int, required=True)
    add_output_arg(resize)


def run(args: argparse.Namespace) -> int:
    service = build_catalog_service()

    async def _list() -> dict[str, Any]:
        listing = await service.load_listing()
        return {"count": len(listing), "collections": [summarize(c) for c in listing]}

    async def _create() -> dict[str, Any]:
        created = await service.create_collection(series=args.series, item_count=args.items)
        return {"success": True, "collection": summarize(created)}

    async def _show() -> dict[str, Any]:
        collection = await service.get_collection(args.collection_id)
        return {
            "collection": summarize(collection),
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "original_order": item.original_order,
                    "has_image": item.has_image,
                }
                for item in collection.items
            ],
        }

    async def _delete() -> dict[str, Any]:
        await service.get_collection(args.collection_id)
        await service.delete_collection(args.collection_id)
        return {"success": True, "deleted": args.collection_id}

    async def _swap() -> dict[str, Any]:
        if args.first == args.second:
            return {"success": False, "error": "Pick two different collections to swap"}
        reorder = CollectionReorder(service.store, await service.load_listing())
        swapped = await reorder.swap(args.first, args.second)
        if not swapped:
            return {
                "success": False,
                "error": f"Both {args.first!r} and {args.second!r} must be existing collections",
            }
        return {
            "success": True,
            "collections": [summarize(c) for c in reorder.listing],
        }

    async def _resize() -> dict[str, Any]:
        resized = await service.resize_collection(args.collection_id, args.count)
        return {"success": True, "collection": summarize(resized)}

    handlers: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {
        "list": _list,
        "create": _create,
        "show": _show,
        "delete": _delete,
        "swap": _swap,
        "resize": _resize,
    }

    handler = handlers.get(args.subcommand)
    if handler is None:
        raise ValueError(f"Unknown collections subcommand: {args.subcommand}")

    payload = run_handler(handler, f"collections {args.subcommand}")
    emit(args, payload)
    return exit_code(payload)


__all__ = ["register", "run", "summarize"]
