from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from repair_desk.models import OrderDetails, OrderStatus
from repair_desk.storage import (
    JsonStore,
    OrderStore,
    StorageCorruptError,
    StorageWriteError,
)
from repair_desk.validation import ValidationError


@pytest.mark.asyncio
async def test_load_all_is_empty_before_first_write(order_store: OrderStore) -> None:
    assert await order_store.async_load_all() == []
    assert await order_store.async_get("missing") is None


@pytest.mark.asyncio
async def test_create_persists_versioned_envelope(tmp_path: Path, make_order) -> None:
    store = OrderStore(base_dir=tmp_path)
    record = make_order(customer_name=None)
    await store.async_create(record)

    raw = json.loads((tmp_path / "orders.json").read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["key"] == "orders"
    assert raw["data"][0]["id"] == record.id
    assert raw["data"][0]["customer"] is None

    reopened = OrderStore(base_dir=tmp_path)
    assert await reopened.async_load_all() == [record]


@pytest.mark.asyncio
async def test_duplicate_id_is_rejected(order_store: OrderStore, make_order) -> None:
    await order_store.async_create(make_order("a1"))
    with pytest.raises(ValidationError):
        await order_store.async_create(make_order("a1"))
    assert len(await order_store.async_load_all()) == 1


@pytest.mark.asyncio
async def test_update_and_delete_of_missing_id_are_noops(tmp_path: Path, make_order) -> None:
    store = OrderStore(base_dir=tmp_path)
    await store.async_create(make_order("a1"))
    path = tmp_path / "orders.json"
    before = path.read_bytes()

    assert await store.async_update("ghost", make_order("ghost")) is False
    assert await store.async_delete("ghost") is False

    assert path.read_bytes() == before
    assert [r.id for r in await store.async_load_all()] == ["a1"]


@pytest.mark.asyncio
async def test_update_replaces_matching_record(order_store: OrderStore, make_order) -> None:
    await order_store.async_create(make_order("a1"))
    await order_store.async_create(make_order("a2"))
    changed = make_order("a1", status=OrderStatus.REPAIRED)
    assert await order_store.async_update("a1", changed) is True
    records = await order_store.async_load_all()
    assert [r.id for r in records] == ["a1", "a2"]
    assert records[0].status is OrderStatus.REPAIRED


@pytest.mark.asyncio
async def test_update_cannot_change_id(order_store: OrderStore, make_order) -> None:
    await order_store.async_create(make_order("a1"))
    with pytest.raises(ValidationError):
        await order_store.async_update("a1", make_order("a2"))


@pytest.mark.asyncio
async def test_delete_removes_record(order_store: OrderStore, make_order) -> None:
    await order_store.async_create(make_order("a1"))
    await order_store.async_create(make_order("a2"))
    assert await order_store.async_delete("a1") is True
    assert [r.id for r in await order_store.async_load_all()] == ["a2"]


@pytest.mark.asyncio
async def test_failed_write_rolls_back(order_store: OrderStore, make_order, monkeypatch) -> None:
    await order_store.async_create(make_order("a1"))

    def _boom(self, txt: str) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(JsonStore, "_write_blob", _boom)
    with pytest.raises(StorageWriteError):
        await order_store.async_create(make_order("a2"))
    with pytest.raises(StorageWriteError):
        await order_store.async_delete("a1")

    assert [r.id for r in await order_store.async_load_all()] == ["a1"]


@pytest.mark.asyncio
async def test_invalid_record_never_reaches_disk(tmp_path: Path, make_order) -> None:
    store = OrderStore(base_dir=tmp_path)
    with pytest.raises(ValidationError):
        await store.async_create(make_order(device_model=""))
    assert not (tmp_path / "orders.json").exists()


@pytest.mark.asyncio
async def test_returned_records_are_copies(order_store: OrderStore, make_order) -> None:
    await order_store.async_create(make_order("a1"))
    loaded = await order_store.async_load_all()
    loaded[0].order_details = replace(loaded[0].order_details, device_model="Tampered")
    loaded.clear()
    again = await order_store.async_load_all()
    assert again[0].order_details.device_model == "ThinkPad T14"
    assert isinstance(again[0].order_details, OrderDetails)


@pytest.mark.asyncio
async def test_upsert_creates_then_replaces(order_store: OrderStore, make_order) -> None:
    assert await order_store.async_upsert(make_order("a1")) is True
    assert await order_store.async_upsert(make_order("a1", status=OrderStatus.CANCELLED)) is False
    record = await order_store.async_get("a1")
    assert record is not None and record.status is OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_clear_removes_blob(tmp_path: Path, make_order) -> None:
    store = OrderStore(base_dir=tmp_path)
    await store.async_create(make_order("a1"))
    await store.async_clear()
    assert not (tmp_path / "orders.json").exists()
    assert await store.async_load_all() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"version": 1}),
        json.dumps({"version": 1, "key": "orders", "data": {"id": "x"}}),
        json.dumps({"version": 1, "key": "orders", "data": [{"id": "x"}]}),
    ],
)
async def test_corrupt_blob_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / "orders.json").write_text(content, encoding="utf-8")
    store = OrderStore(base_dir=tmp_path)
    with pytest.raises(StorageCorruptError):
        await store.async_load_all()
