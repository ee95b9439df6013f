"""Tests for click-to-swap reordering."""

import sqlite3

import pytest

from atelier_catalog.services.reorder import (
    CollectionReorder,
    ItemReorder,
    SwapSelection,
    normalize_orders,
)
from atelier_catalog.utils.errors import StorageError


def test_selection_state_machine():
    selection = SwapSelection()

    assert selection.click("a") is None
    assert selection.selected == "a"
    assert selection.click("a") is None
    assert selection.selected is None

    selection.click("a")
    assert selection.click("b") == ("a", "b")
    assert selection.selected is None


def test_selection_forgets_removed_entity():
    selection = SwapSelection()
    selection.click("a")

    selection.forget("b")
    assert selection.selected == "a"
    selection.forget("a")
    assert selection.selected is None


def test_normalize_orders_uses_position(make_collection):
    listing = normalize_orders(
        [make_collection("x", order=None), make_collection("y", order=7), make_collection("z")]
    )

    assert [c.order for c in listing] == [0, 7, 2]


@pytest.mark.asyncio
async def test_select_then_swap_two_collections(store, make_collection):
    await store.put_many([make_collection("A", order=0), make_collection("B", order=1)])
    reorder = CollectionReorder(store, await store.get_all())

    assert await reorder.click("A") is False
    assert reorder.selected == "A"
    assert await reorder.click("B") is True

    listing = await store.get_all()
    assert [(c.id, c.order) for c in listing] == [("B", 0), ("A", 1)]
    assert [c.id for c in reorder.listing] == ["B", "A"]
    assert reorder.selected is None


@pytest.mark.asyncio
async def test_swap_preserves_the_set_of_orders(store, make_collection):
    await store.put_many([make_collection(c, order=i) for i, c in enumerate("abcde")])
    reorder = CollectionReorder(store, await store.get_all())

    await reorder.swap("b", "e")

    listing = await store.get_all()
    assert sorted(c.order for c in listing) == [0, 1, 2, 3, 4]
    assert {c.id: c.order for c in listing} == {"a": 0, "b": 4, "c": 2, "d": 3, "e": 1}


@pytest.mark.asyncio
async def test_clicking_same_collection_twice_deselects(store, make_collection):
    await store.put_many([make_collection("A", order=0), make_collection("B", order=1)])
    reorder = CollectionReorder(store, await store.get_all())

    await reorder.click("A")
    assert await reorder.click("A") is False

    assert reorder.selected is None
    assert [(c.id, c.order) for c in await store.get_all()] == [("A", 0), ("B", 1)]


@pytest.mark.asyncio
async def test_swap_with_unknown_id_is_ignored(store, make_collection):
    await store.put_many([make_collection("A", order=0)])
    reorder = CollectionReorder(store, await store.get_all())

    assert await reorder.swap("A", "ghost") is False


@pytest.mark.asyncio
async def test_swap_with_itself_is_ignored(store, make_collection):
    await store.put_many([make_collection("A", order=0), make_collection("B", order=1)])
    reorder = CollectionReorder(store, await store.get_all())

    assert await reorder.swap("A", "A") is False
    assert [(c.id, c.order) for c in await store.get_all()] == [("A", 0), ("B", 1)]


@pytest.mark.asyncio
async def test_failed_swap_rolls_back(store, make_collection, monkeypatch):
    await store.put_many([make_collection("A", order=0), make_collection("B", order=1)])
    reorder = CollectionReorder(store, await store.get_all())
    before = list(reorder.listing)

    def failing_encode(collection):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "_encode", failing_encode)

    await reorder.click("A")
    with pytest.raises(StorageError):
        await reorder.click("B")

    monkeypatch.undo()
    assert reorder.listing == before
    assert reorder.selected is None
    assert [(c.id, c.order) for c in await store.get_all()] == [("A", 0), ("B", 1)]


@pytest.mark.asyncio
async def test_remove_clears_selection(store, make_collection):
    await store.put_many([make_collection("A", order=0), make_collection("B", order=1)])
    reorder = CollectionReorder(store, await store.get_all())
    await reorder.click("A")

    reorder.remove("A")

    assert reorder.selected is None
    assert [c.id for c in reorder.listing] == ["B"]


def test_item_swap_exchanges_positions(make_collection):
    collection = make_collection("c", order=0, items=3)
    reorder = ItemReorder(collection)
    first, _, third = (item.id for item in collection.items)

    assert reorder.click(first) is False
    assert reorder.click(third) is True

    ids = [item.id for item in reorder.collection.items]
    assert ids == [third, collection.items[1].id, first]
    # originalOrder travels with the item
    assert reorder.collection.items[0].original_order == 3
