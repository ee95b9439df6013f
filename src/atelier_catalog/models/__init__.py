"""Catalog data models."""

from .catalog import (
    INSERT_AT_TOP,
    Collection,
    Item,
    assign_missing_orders,
    dump_catalog,
    parse_catalog,
)
from .enums import CollectionKind, CollectionStatus, ImportPolicy

__all__ = [
    "INSERT_AT_TOP",
    "Collection",
    "CollectionKind",
    "CollectionStatus",
    "ImportPolicy",
    "Item",
    "assign_missing_orders",
    "dump_catalog",
    "parse_catalog",
]
