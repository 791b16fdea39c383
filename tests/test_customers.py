from __future__ import annotations

from pathlib import Path

import pytest

from repair_desk.customers import CustomerBook
from repair_desk.models import Customer
from repair_desk.storage import StorageCorruptError
from repair_desk.validation import ValidationError


@pytest.mark.asyncio
async def test_remember_adds_once_and_refreshes_address(tmp_path: Path) -> None:
    book = CustomerBook(base_dir=tmp_path)
    assert await book.async_remember(Customer("Alice Smith", "5550101", "12 Main St")) is True
    assert await book.async_remember(Customer("alice smith", "5550101", "9 Elm Rd")) is False
    assert await book.async_remember(Customer("Alice Smith", "5550199")) is True

    reopened = CustomerBook(base_dir=tmp_path)
    customers = await reopened.async_list()
    assert [(c.name, c.phone, c.address) for c in customers] == [
        ("alice smith", "5550101", "9 Elm Rd"),
        ("Alice Smith", "5550199", ""),
    ]
    assert (tmp_path / "customers.json").exists()


@pytest.mark.asyncio
async def test_blank_name_is_rejected(tmp_path: Path) -> None:
    book = CustomerBook(base_dir=tmp_path)
    with pytest.raises(ValidationError):
        await book.async_remember(Customer("  ", "555"))
    assert await book.async_list() == []


@pytest.mark.asyncio
async def test_search_by_name_or_phone(tmp_path: Path) -> None:
    book = CustomerBook(base_dir=tmp_path)
    await book.async_save_all([Customer("Alice", "5550101"), Customer("Bob", "7770000")])

    assert [c.name for c in await book.async_search("ali")] == ["Alice"]
    assert [c.name for c in await book.async_search("777")] == ["Bob"]
    assert len(await book.async_search("")) == 2


@pytest.mark.asyncio
async def test_corrupt_list_raises(tmp_path: Path) -> None:
    (tmp_path / "customers.json").write_text('{"version": 1, "data": {"name": "x"}}', encoding="utf-8")
    with pytest.raises(StorageCorruptError):
        await CustomerBook(base_dir=tmp_path).async_list()
