"""Tests for the SQLite local store."""

import sqlite3

import pytest

from atelier_catalog.clients.local_store import LocalStore, sort_collections
from atelier_catalog.utils.errors import StorageError


@pytest.mark.asyncio
async def test_put_one_and_get_one(store, make_collection):
    collection = make_collection("c1", order=0, title="Chats", items=3)
    await store.put_one(collection)

    loaded = await store.get_one("c1")

    assert loaded == collection
    assert await store.get_one("missing") is None


@pytest.mark.asyncio
async def test_put_one_replaces_by_id(store, make_collection):
    await store.put_one(make_collection("c1", order=0, title="Old"))
    await store.put_one(make_collection("c1", order=0, title="New"))

    listing = await store.get_all()

    assert [c.title for c in listing] == ["New"]
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_get_all_sorts_by_order(store, make_collection):
    await store.put_many(
        [
            make_collection("b", order=2),
            make_collection("a", order=0),
            make_collection("c", order=1),
        ]
    )

    listing = await store.get_all()

    assert [c.id for c in listing] == ["a", "c", "b"]


@pytest.mark.asyncio
async def test_get_all_falls_back_to_created_at_when_an_order_is_missing(store, make_collection):
    await store.put_many(
        [
            make_collection("old", order=0, created_at=1000),
            make_collection("new", order=None, created_at=3000),
            make_collection("mid", order=5, created_at=2000),
        ]
    )

    listing = await store.get_all()

    assert [c.id for c in listing] == ["new", "mid", "old"]


def test_sort_collections_breaks_order_ties_by_id(make_collection):
    listing = sort_collections(
        [make_collection("z", order=1), make_collection("m", order=1), make_collection("a", order=0)]
    )

    assert [c.id for c in listing] == ["a", "m", "z"]


@pytest.mark.asyncio
async def test_put_many_is_atomic(store, make_collection, monkeypatch):
    await store.put_many([make_collection("a", order=0, title="before")])

    original_encode = store._encode
    calls = 0

    def failing_encode(collection):
        nonlocal calls
        calls += 1
        if calls == 2:
            raise sqlite3.OperationalError("disk I/O error")
        return original_encode(collection)

    monkeypatch.setattr(store, "_encode", failing_encode)

    with pytest.raises(StorageError, match="disk I/O error"):
        await store.put_many(
            [
                make_collection("a", order=0, title="after"),
                make_collection("b", order=1),
            ]
        )

    monkeypatch.undo()
    listing = await store.get_all()
    assert [(c.id, c.title) for c in listing] == [("a", "before")]


@pytest.mark.asyncio
async def test_put_many_empty_batch_is_a_noop(store):
    await store.put_many([])

    assert await store.get_all() == []


@pytest.mark.asyncio
async def test_delete_one_absent_id_is_not_an_error(store, make_collection):
    await store.put_one(make_collection("a", order=0))

    await store.delete_one("missing")
    await store.delete_one("a")

    assert await store.get_all() == []


@pytest.mark.asyncio
async def test_clear_all(store, make_collection):
    await store.put_many([make_collection(str(i), order=i) for i in range(5)])

    await store.clear_all()

    assert await store.count() == 0


@pytest.mark.asyncio
async def test_store_survives_reopen(tmp_path, make_collection):
    path = tmp_path / "nested" / "catalog.sqlite3"
    await LocalStore(path).put_one(make_collection("a", order=0, title="Persisted"))

    listing = await LocalStore(path).get_all()

    assert [c.title for c in listing] == ["Persisted"]


@pytest.mark.asyncio
async def test_unreadable_record_raises_storage_error(tmp_path, make_collection):
    path = tmp_path / "catalog.sqlite3"
    store = LocalStore(path)
    await store.put_one(make_collection("a", order=0))

    conn = sqlite3.connect(path)
    conn.execute("UPDATE collections SET payload = 'not json' WHERE id = 'a'")
    conn.commit()
    conn.close()

    with pytest.raises(StorageError, match="unreadable"):
        await store.get_all()
