"""
Pydantic models for catalog records.

Field aliases follow the wire format shared by the local store, the
export file and the remote backup (camelCase keys, one JSON array of
collections).
"""

import json
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from atelier_catalog.models.enums import CollectionKind, CollectionStatus
from atelier_catalog.utils.errors import ValidationError

DEFAULT_TITLE = "Nouvelle Collection"
DEFAULT_EN_TITLE = "New Collection"

# Sentinel order of a collection that must be inserted at the top
INSERT_AT_TOP = -1


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


class CatalogModel(BaseModel):
    """Base class for wire-format records."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Item(CatalogModel):
    """A single named slot within a collection."""

    id: str = Field(..., min_length=1)
    original_order: int = Field(..., alias="originalOrder")
    name: str = Field(default="")
    image_url: str | None = Field(
        default=None,
        alias="imageUrl",
        description="Embedded image as a data URL, absent until attached",
    )

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)


class Collection(CatalogModel):
    """A named, ordered set of items representing one catalog entry."""

    id: str = Field(..., min_length=1)
    order: int | None = Field(
        default=None,
        description="Listing position; absent on records saved before manual ordering",
    )
    title: str = Field(default="")
    en_title: str = Field(default="", alias="enTitle")
    series: str = Field(default="")
    zh_desc: str = Field(default="", alias="zhDesc")
    en_desc: str = Field(default="", alias="enDesc")
    store_url: str = Field(default="", alias="storeUrl")
    status: CollectionStatus = Field(default=CollectionStatus.IDEATION)
    kind: CollectionKind = Field(default=CollectionKind.STICKER, alias="type")
    item_count: int = Field(default=0, ge=0, alias="itemCount")
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    items: list[Item] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_item_ids(self) -> "Collection":
        seen: set[str] = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"duplicate item id {item.id!r}")
            seen.add(item.id)
        return self

    @classmethod
    def new(
        cls,
        item_count: int = 40,
        series: str = "",
        title: str = DEFAULT_TITLE,
        en_title: str = DEFAULT_EN_TITLE,
        created_at: int | None = None,
    ) -> "Collection":
        """
        Build a fresh collection with `item_count` empty items.

        The order is the insert-at-top sentinel; the catalog service
        assigns the real position when it commits the collection.
        """
        created = now_ms() if created_at is None else created_at
        collection_id = str(created)
        items = [
            Item(id=f"item-{collection_id}-{i}", original_order=i + 1, name=f"Image {i + 1}")
            for i in range(item_count)
        ]
        return cls(
            id=collection_id,
            order=INSERT_AT_TOP,
            title=title,
            en_title=en_title,
            series=series,
            item_count=item_count,
            created_at=created,
            items=items,
        )

    def resized(self, count: int) -> "Collection":
        """
        Return a copy whose item sequence has exactly `count` entries.

        Truncates from the end, or pads with new empty items numbered after
        the current length.
        """
        if count < 0:
            raise ValidationError(f"Item count must be >= 0, got {count}")

        items = list(self.items[:count])
        if count > len(items):
            stamp = now_ms()
            taken = {item.id for item in self.items}
            for position in range(len(items), count):
                item_id = f"new-{stamp}-{position}"
                while item_id in taken:
                    stamp += 1
                    item_id = f"new-{stamp}-{position}"
                taken.add(item_id)
                items.append(
                    Item(id=item_id, original_order=position + 1, name=f"Image {position + 1}")
                )
        return Collection.model_validate({**self.model_dump(), "item_count": count, "items": items})

    def find_item(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def image_count(self) -> int:
        return sum(1 for item in self.items if item.has_image)


# -------------------- Wire Format Helpers --------------------


def dump_catalog(collections: list[Collection]) -> str:
    """Serialize a catalog to its canonical JSON document."""
    return json.dumps(
        [collection.to_wire() for collection in collections],
        indent=2,
        ensure_ascii=False,
    )


def assign_missing_orders(records: list[Any]) -> list[Any]:
    """
    Give every record without an integer `order` its index in the array.

    Non-dict entries are passed through for `parse_catalog` to reject.
    """
    normalized: list[Any] = []
    for index, record in enumerate(records):
        if isinstance(record, dict):
            order = record.get("order")
            if not isinstance(order, int) or isinstance(order, bool):
                record = {**record, "order": index}
        normalized.append(record)
    return normalized


def parse_catalog(value: Any) -> list[Collection]:
    """
    Validate a decoded JSON value as a catalog.

    Raises:
        ValidationError: If the top level is not an array or a record does
            not match the collection schema
    """
    if not isinstance(value, list):
        raise ValidationError(
            f"Catalog must be a JSON array, got {type(value).__name__}",
            suggestion="Use a file exported by this application",
        )

    collections: list[Collection] = []
    for index, record in enumerate(value):
        try:
            collections.append(Collection.model_validate(record))
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            detail = first.get("msg", str(e))
            raise ValidationError(
                f"Record {index} is not a valid collection"
                + (f" ({location}: {detail})" if location else f" ({detail})")
            ) from e
    return collections
