"""
Click-to-select / click-to-swap reordering.

The same two-click state machine drives two reorderings:

- `CollectionReorder` swaps the `order` of two collections and persists
  the whole listing in one batch, rolling back the in-memory listing if
  the batch fails.
- `ItemReorder` swaps two items inside a collection draft; nothing is
  persisted until the editor saves.
"""

import logging

from atelier_catalog.clients.local_store import LocalStore
from atelier_catalog.models.catalog import Collection
from atelier_catalog.utils.errors import StorageError

logger = logging.getLogger(__name__)


class SwapSelection:
    """
    Ephemeral selection state: nothing selected, or one source id.

    `click` returns the `(source, target)` pair when a second, different id
    is clicked, and None otherwise. The selection is cleared after a pair
    is returned.
    """

    def __init__(self) -> None:
        self.selected: str | None = None

    def click(self, target_id: str) -> tuple[str, str] | None:
        if self.selected is None:
            self.selected = target_id
            return None
        if self.selected == target_id:
            self.selected = None
            return None
        source_id = self.selected
        self.selected = None
        return source_id, target_id

    def reset(self) -> None:
        self.selected = None

    def forget(self, target_id: str) -> None:
        """Drop the selection if it points at a removed entity."""
        if self.selected == target_id:
            self.selected = None


def normalize_orders(listing: list[Collection]) -> list[Collection]:
    """Give collections without an order their position in the listing."""
    return [
        c if c.order is not None else c.model_copy(update={"order": index})
        for index, c in enumerate(listing)
    ]


class CollectionReorder:
    """
    Persisted swap of collection positions.

    Args:
        store: Local store the listing is persisted to
        listing: Current in-memory listing (as returned by `get_all`)
    """

    def __init__(self, store: LocalStore, listing: list[Collection]):
        self.store = store
        self.listing = normalize_orders(listing)
        self.selection = SwapSelection()

    @property
    def selected(self) -> str | None:
        return self.selection.selected

    async def click(self, collection_id: str) -> bool:
        """
        Feed one click into the state machine.

        Returns:
            True if this click completed and persisted a swap

        Raises:
            StorageError: If persisting the swap failed; the listing is left
                exactly as it was before the swap and the selection is reset
        """
        pair = self.selection.click(collection_id)
        if pair is None:
            return False
        return await self.swap(*pair)

    async def swap(self, source_id: str, target_id: str) -> bool:
        """Exchange the orders of two collections and persist the listing."""
        if source_id == target_id:
            logger.warning(f"Swap ignored: {source_id} swapped with itself")
            return False
        index = {c.id: i for i, c in enumerate(self.listing)}
        if source_id not in index or target_id not in index:
            logger.warning(f"Swap ignored: {source_id} or {target_id} not in listing")
            return False

        a = self.listing[index[source_id]]
        b = self.listing[index[target_id]]
        swapped = list(self.listing)
        swapped[index[source_id]] = a.model_copy(update={"order": b.order})
        swapped[index[target_id]] = b.model_copy(update={"order": a.order})
        swapped.sort(key=lambda c: (c.order, c.id))

        try:
            await self.store.put_many(swapped)
        except StorageError:
            logger.error(f"Failed to persist swap of {source_id} and {target_id}")
            raise

        self.listing = swapped
        logger.info(f"Swapped {source_id} (order {a.order}) with {target_id} (order {b.order})")
        return True

    def remove(self, collection_id: str) -> None:
        """Drop a deleted collection from the listing and the selection."""
        self.listing = [c for c in self.listing if c.id != collection_id]
        self.selection.forget(collection_id)


class ItemReorder:
    """In-memory index swap of items inside one collection draft."""

    def __init__(self, collection: Collection):
        self.collection = collection
        self.selection = SwapSelection()

    @property
    def selected(self) -> str | None:
        return self.selection.selected

    def click(self, item_id: str) -> bool:
        """Returns True if this click swapped two items."""
        pair = self.selection.click(item_id)
        if pair is None:
            return False

        items = list(self.collection.items)
        positions = {item.id: i for i, item in enumerate(items)}
        source_id, target_id = pair
        if source_id not in positions or target_id not in positions:
            return False

        i, j = positions[source_id], positions[target_id]
        items[i], items[j] = items[j], items[i]
        self.collection = self.collection.model_copy(update={"items": items})
        return True
