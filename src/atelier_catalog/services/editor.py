"""Draft editing of a single collection."""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from atelier_catalog.models.catalog import Collection, Item
from atelier_catalog.services.catalog_service import CatalogService
from atelier_catalog.services.reorder import ItemReorder
from atelier_catalog.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Fields an editor may change directly
EDITABLE_FIELDS = {
    "title",
    "en_title",
    "series",
    "zh_desc",
    "en_desc",
    "store_url",
    "status",
    "kind",
}


class CollectionEditor:
    """
    Working copy of one collection.

    Every change applies to the draft only; `save` commits the whole draft
    in one write. Item swaps go through an `ItemReorder` on the draft.
    """

    def __init__(self, service: CatalogService, collection: Collection):
        self.service = service
        self.original = collection
        self._reorder = ItemReorder(collection)

    @property
    def draft(self) -> Collection:
        return self._reorder.collection

    @draft.setter
    def draft(self, collection: Collection) -> None:
        self._reorder.collection = collection

    @property
    def selected_item(self) -> str | None:
        return self._reorder.selected

    @property
    def dirty(self) -> bool:
        return self.draft != self.original

    def _item(self, item_id: str) -> Item:
        item = self.draft.find_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id!r} not found in collection {self.draft.id!r}")
        return item

    def _replace_item(self, item_id: str, **update: Any) -> None:
        items = [
            item.model_copy(update=update) if item.id == item_id else item
            for item in self.draft.items
        ]
        self.draft = self.draft.model_copy(update={"items": items})

    def update_fields(self, **changes: Any) -> Collection:
        """Change descriptive fields (title, status, kind, ...) of the draft."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        try:
            self.draft = Collection.model_validate({**self.draft.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid collection fields: {e.errors()[0]['msg']}") from e
        return self.draft

    def rename_item(self, item_id: str, name: str) -> Item:
        self._item(item_id)
        self._replace_item(item_id, name=name)
        return self._item(item_id)

    async def set_item_image(
        self,
        item_id: str,
        data: bytes,
        content_type: str | None = None,
    ) -> Item:
        """Encode an image through the codec into the draft."""
        self._item(item_id)
        data_url = await self.service.codec.compress_bytes(data, content_type)
        self._replace_item(item_id, image_url=data_url)
        return self._item(item_id)

    def remove_item_image(self, item_id: str) -> Item:
        self._item(item_id)
        self._replace_item(item_id, image_url=None)
        return self._item(item_id)

    def resize(self, count: int) -> Collection:
        """Truncate or pad the draft's items to `count`."""
        self.draft = self.draft.resized(count)
        selected = self._reorder.selected
        if selected is not None and self.draft.find_item(selected) is None:
            self._reorder.selection.reset()
        return self.draft

    def click_item(self, item_id: str) -> bool:
        """Select or swap items; returns True when two items were swapped."""
        self._item(item_id)
        return self._reorder.click(item_id)

    async def save(self) -> Collection:
        saved = await self.service.save_collection(self.draft)
        self.original = saved
        logger.debug(f"Editor saved {saved.id} ({len(saved.items)} items)")
        return saved
