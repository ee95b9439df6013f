"""Catalog, reorder, editor and sync services."""

from .catalog_service import CatalogService, CompressionReport, RestoreResult
from .editor import CollectionEditor
from .reorder import CollectionReorder, ItemReorder, SwapSelection, normalize_orders
from .sync_service import SyncService, decode_catalog

__all__ = [
    "CatalogService",
    "CollectionEditor",
    "CollectionReorder",
    "CompressionReport",
    "ItemReorder",
    "RestoreResult",
    "SwapSelection",
    "SyncService",
    "decode_catalog",
    "normalize_orders",
]
