"""
Catalog Service.

Handles the catalog operations the UI calls into: create, save and delete
collections, attach images, bulk image compression, export/import and the
restore/backup flows against the remote sync service.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
import inspect
import json
import logging
from pathlib import Path

from atelier_catalog.clients.local_store import LocalStore
from atelier_catalog.models.catalog import (
    Collection,
    assign_missing_orders,
    dump_catalog,
    now_ms,
    parse_catalog,
)
from atelier_catalog.models.enums import ImportPolicy
from atelier_catalog.services.reorder import normalize_orders
from atelier_catalog.services.sync_service import SyncService, classify_parse_failure
from atelier_catalog.utils.errors import ImageCodecError, NotFoundError, ValidationError
from atelier_catalog.utils.image_codec import ImageCodec
from atelier_catalog.utils.logging_config import log_task_end, log_task_start

logger = logging.getLogger(__name__)

# Asked before destructive operations; may be sync or async
Confirmation = Callable[[str], bool | Awaitable[bool]]
ProgressCallback = Callable[[int, int], None]


async def _ask(confirm: Confirmation | None, prompt: str) -> bool:
    if confirm is None:
        return True
    answer = confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


@dataclass
class CompressionReport:
    """Outcome of a compress-all pass."""

    total: int = 0
    compressed: int = 0
    failed: int = 0
    bytes_before: int = 0
    bytes_after: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def saved_ratio(self) -> float:
        if not self.bytes_before:
            return 0.0
        return 1 - self.bytes_after / self.bytes_before


@dataclass
class RestoreResult:
    """Outcome of a restore from the remote backup."""

    # "restored", "empty" (no backup yet) or "cancelled"
    status: str
    count: int = 0


class CatalogService:
    """
    Catalog operations on top of the local store.

    Args:
        store: Local store
        codec: Image codec used for attachments and compress-all
        default_item_count: Items created with a new collection
    """

    def __init__(
        self,
        store: LocalStore,
        codec: ImageCodec | None = None,
        default_item_count: int = 40,
    ):
        self.store = store
        self.codec = codec or ImageCodec()
        self.default_item_count = default_item_count

    # -------------------- Collections --------------------

    async def load_listing(self) -> list[Collection]:
        """All collections in listing order, missing orders filled by position."""
        return normalize_orders(await self.store.get_all())

    async def get_collection(self, collection_id: str) -> Collection:
        collection = await self.store.get_one(collection_id)
        if collection is None:
            raise NotFoundError(f"Collection {collection_id!r} not found")
        return collection

    async def create_collection(
        self,
        series: str = "",
        item_count: int | None = None,
    ) -> Collection:
        """
        Create a collection at the top of the listing.

        Every existing collection moves down one position; the new one is
        committed at order 0 in the same batch.
        """
        count = self.default_item_count if item_count is None else item_count
        if count < 0:
            raise ValidationError(f"Item count must be >= 0, got {count}")

        listing = await self.load_listing()
        # Ids are creation timestamps; step past any taken in the same millisecond
        taken = {c.id for c in listing}
        stamp = now_ms()
        while str(stamp) in taken:
            stamp += 1
        new = Collection.new(item_count=count, series=series, created_at=stamp)
        shifted = [c.model_copy(update={"order": c.order + 1}) for c in listing]
        created = new.model_copy(update={"order": 0})

        await self.store.put_many([created, *shifted])
        logger.info(f"Created collection {created.id} with {count} items")
        return created

    async def save_collection(self, collection: Collection) -> Collection:
        """Replace a collection by id (editor save)."""
        await self.store.put_one(collection)
        logger.info(f"Saved collection {collection.id}")
        return collection

    async def delete_collection(self, collection_id: str) -> None:
        await self.store.delete_one(collection_id)
        logger.info(f"Deleted collection {collection_id}")

    async def resize_collection(self, collection_id: str, count: int) -> Collection:
        """Truncate or pad a collection's items to `count` and save it."""
        collection = await self.get_collection(collection_id)
        return await self.save_collection(collection.resized(count))

    # -------------------- Images --------------------

    async def attach_image(
        self,
        collection_id: str,
        item_id: str,
        data: bytes,
        content_type: str | None = None,
    ) -> Collection:
        """Encode an image through the codec and store it on one item."""
        collection = await self.get_collection(collection_id)
        if collection.find_item(item_id) is None:
            raise NotFoundError(f"Item {item_id!r} not found in collection {collection_id!r}")

        data_url = await self.codec.compress_bytes(data, content_type)
        return await self.save_collection(_with_image(collection, item_id, data_url))

    async def clear_image(self, collection_id: str, item_id: str) -> Collection:
        collection = await self.get_collection(collection_id)
        if collection.find_item(item_id) is None:
            raise NotFoundError(f"Item {item_id!r} not found in collection {collection_id!r}")
        return await self.save_collection(_with_image(collection, item_id, None))

    async def compress_all(
        self,
        progress: ProgressCallback | None = None,
    ) -> CompressionReport:
        """
        Re-encode every stored image through the codec.

        All images are compressed concurrently. A failing image keeps its
        original data and is counted in the report; the pass itself only
        fails if the final batch write fails.
        """
        listing = await self.store.get_all()
        targets = [
            (c_index, item.id, item.image_url)
            for c_index, collection in enumerate(listing)
            for item in collection.items
            if item.image_url
        ]
        report = CompressionReport(total=len(targets))
        if not targets:
            logger.info("No images to compress")
            return report

        task_name = "Compress all images"
        log_task_start(logger, task_name, images=report.total, max_width=self.codec.max_width)
        done = 0

        async def _compress(item_id: str, data_url: str) -> str:
            nonlocal done
            try:
                result = await self.codec.compress_data_url(data_url)
                report.compressed += 1
            except ImageCodecError as e:
                report.failed += 1
                report.errors.append(f"{item_id}: {e}")
                logger.warning(f"Keeping original image for {item_id}: {e}")
                result = data_url
            done += 1
            if progress:
                progress(done, report.total)
            return result

        results = await asyncio.gather(
            *(_compress(item_id, data_url) for _, item_id, data_url in targets)
        )

        updated: dict[int, Collection] = {}
        for (c_index, item_id, before), after in zip(targets, results):
            report.bytes_before += len(before)
            report.bytes_after += len(after)
            if after != before:
                current = updated.get(c_index, listing[c_index])
                updated[c_index] = _with_image(current, item_id, after)

        await self.store.put_many(updated.values())
        log_task_end(
            logger,
            task_name,
            items_processed=report.compressed,
            errors=report.errors,
            bytes_before=report.bytes_before,
            bytes_after=report.bytes_after,
        )
        return report

    # -------------------- Export / Import --------------------

    async def export_catalog(self) -> str:
        """The full catalog as the same JSON array the remote backup holds."""
        return dump_catalog(await self.store.get_all())

    async def export_to_file(self, directory: str | Path = ".") -> Path:
        """Write `atelier-backup-YYYY-MM-DD.json` into `directory`."""
        content = await self.export_catalog()
        path = Path(directory).expanduser() / f"atelier-backup-{date.today().isoformat()}.json"
        await asyncio.to_thread(path.write_text, content, "utf-8")
        logger.info(f"Exported catalog to {path}")
        return path

    async def import_catalog(
        self,
        raw: str | bytes,
        policy: ImportPolicy = ImportPolicy.MERGE,
    ) -> int:
        """
        Apply an exported catalog.

        RESTORE clears the store first; MERGE overwrites by id. Records
        without an order get their position in the array.

        Returns:
            Number of collections written
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ValidationError(f"Import file is not UTF-8 text: {e}") from e
        if not raw.strip():
            raise ValidationError("Import file is empty")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise classify_parse_failure(raw, e) from e
        if not isinstance(data, list):
            raise ValidationError(
                "Import file must contain a JSON array of collections",
                suggestion="Use a file exported by this application",
            )
        collections = parse_catalog(assign_missing_orders(data))

        policy = ImportPolicy(policy)
        log_task_start(logger, "Import catalog", records=len(collections), policy=policy.value)
        if policy is ImportPolicy.RESTORE:
            await self.store.clear_all()
        await self.store.put_many(collections)
        log_task_end(logger, "Import catalog", items_processed=len(collections))
        return len(collections)

    # -------------------- Remote Backup --------------------

    async def backup_to_remote(self, sync: SyncService) -> int:
        """Upload the full local catalog. Returns the number of collections sent."""
        catalog = await self.store.get_all()
        await sync.upload(catalog)
        return len(catalog)

    async def restore_from_remote(
        self,
        sync: SyncService,
        confirm: Confirmation | None = None,
    ) -> RestoreResult:
        """
        Replace the local catalog with the remote backup.

        Nothing is touched when there is no backup yet or when the
        confirmation is declined.
        """
        remote = await sync.download()
        if not remote:
            logger.info("No remote backup to restore")
            return RestoreResult(status="empty")

        prompt = (
            f"Replace the local catalog with {len(remote)} collections "
            "from the remote backup?"
        )
        if not await _ask(confirm, prompt):
            return RestoreResult(status="cancelled")

        log_task_start(logger, "Restore from remote", records=len(remote))
        await self.store.clear_all()
        await self.store.put_many(remote)
        log_task_end(logger, "Restore from remote", items_processed=len(remote))
        return RestoreResult(status="restored", count=len(remote))


def _with_image(collection: Collection, item_id: str, data_url: str | None) -> Collection:
    items = [
        item.model_copy(update={"image_url": data_url}) if item.id == item_id else item
        for item in collection.items
    ]
    return collection.model_copy(update={"items": items})
