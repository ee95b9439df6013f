"""
Local catalog store.

Durable key-value persistence for collections on top of SQLite. Each
record is stored as its wire-format JSON, keyed by collection id.

Every public method is a coroutine; the blocking SQLite work runs in a
worker thread with its own short-lived connection. Writes run in a single
transaction, so a failed batch leaves none of its rows visible.
"""

import asyncio
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
import json
import logging
from pathlib import Path
import sqlite3
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from atelier_catalog.models.catalog import Collection
from atelier_catalog.utils.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS collections (
    id TEXT PRIMARY KEY,
    payload TEXT NOT NULL
)
"""


def sort_collections(collections: list[Collection]) -> list[Collection]:
    """
    Apply the listing order.

    When every record has an order, sort ascending by order. Otherwise
    (legacy records saved before manual ordering) sort the whole set by
    creation time, newest first. Ties fall back to the identifier so the
    result is deterministic.
    """
    if all(c.order is not None for c in collections):
        return sorted(collections, key=lambda c: (c.order, c.id))
    by_id = sorted(collections, key=lambda c: c.id)
    return sorted(by_id, key=lambda c: c.created_at, reverse=True)


class LocalStore:
    """
    SQLite-backed store of collections.

    Usage:
        store = LocalStore("~/.config/atelier-catalog/catalog.sqlite3")
        await store.put_one(collection)
        listing = await store.get_all()
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize the store.

        Args:
            db_path: Path of the SQLite file (created on first use)
        """
        self.db_path = Path(db_path).expanduser()
        self._initialized = False

    # -------------------- Connection Handling --------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        try:
            if not self._initialized:
                conn.execute(SCHEMA)
                self._initialized = True
            yield conn
        finally:
            conn.close()

    def _encode(self, collection: Collection) -> tuple[str, str]:
        return collection.id, json.dumps(collection.to_wire(), ensure_ascii=False)

    def _decode(self, row_id: str, payload: str) -> Collection:
        try:
            return Collection.model_validate(json.loads(payload))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise StorageError(
                f"Stored record {row_id!r} is unreadable: {e}",
                suggestion="Restore the catalog from an export or the remote backup",
            ) from e

    async def _run(self, description: str, func: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except StorageError:
            raise
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Local store {description} failed: {e}")
            raise StorageError(f"Local store {description} failed: {e}") from e

    # -------------------- Blocking Operations --------------------

    def _write_sync(self, collections: list[Collection]) -> None:
        with self._connect() as conn:
            try:
                conn.execute("BEGIN")
                for collection in collections:
                    conn.execute(
                        "INSERT OR REPLACE INTO collections (id, payload) VALUES (?, ?)",
                        self._encode(collection),
                    )
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def _read_all_sync(self) -> list[Collection]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, payload FROM collections").fetchall()
        return [self._decode(row_id, payload) for row_id, payload in rows]

    def _read_one_sync(self, collection_id: str) -> Collection | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, payload FROM collections WHERE id = ?", (collection_id,)
            ).fetchone()
        return self._decode(*row) if row else None

    def _delete_sync(self, collection_id: str | None) -> int:
        with self._connect() as conn:
            if collection_id is None:
                cursor = conn.execute("DELETE FROM collections")
            else:
                cursor = conn.execute(
                    "DELETE FROM collections WHERE id = ?", (collection_id,)
                )
            return cursor.rowcount

    def _count_sync(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM collections").fetchone()[0]

    # -------------------- Public API --------------------

    async def put_one(self, collection: Collection) -> None:
        """Insert or overwrite one collection by id."""
        await self._run("write", self._write_sync, [collection])
        logger.debug(f"Saved collection {collection.id}")

    async def put_many(self, collections: Iterable[Collection]) -> None:
        """
        Insert or overwrite a batch of collections atomically.

        Either every record in the batch becomes visible or, on failure,
        none of them does.

        Raises:
            StorageError: If the transaction could not be committed
        """
        batch = list(collections)
        if not batch:
            return
        await self._run("batch write", self._write_sync, batch)
        logger.debug(f"Saved batch of {len(batch)} collections")

    async def get_all(self) -> list[Collection]:
        """Every stored collection in listing order (see `sort_collections`)."""
        collections = await self._run("read", self._read_all_sync)
        return sort_collections(collections)

    async def get_one(self, collection_id: str) -> Collection | None:
        """One collection by id, or None when absent."""
        return await self._run("read", self._read_one_sync, collection_id)

    async def delete_one(self, collection_id: str) -> None:
        """Remove one collection; absent ids are not an error."""
        removed = await self._run("delete", self._delete_sync, collection_id)
        logger.debug(f"Deleted collection {collection_id} (rows={removed})")

    async def clear_all(self) -> None:
        """Remove every collection. Only used as the first step of a restore."""
        removed = await self._run("clear", self._delete_sync, None)
        logger.info(f"Cleared local store ({removed} collections removed)")

    async def count(self) -> int:
        return await self._run("count", self._count_sync)
