"""Saved customers offered when a new order is taken.

The list lives only on the device; it is never sent to the remote store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from .const import CUSTOMERS_STORAGE_KEY, DEFAULT_STORAGE_DIR
from .models import Customer
from .storage import JsonStore, StorageCorruptError
from .validation import ValidationError, validate_customer_payload

_LOGGER = logging.getLogger(__name__)


def _normalise(customer: Customer) -> Customer:
    return Customer.from_dict(validate_customer_payload(customer.to_dict()))


class CustomerBook:
    """Local list of customers, keyed by name and phone."""

    def __init__(self, *, base_dir: str | Path | None = None, store: JsonStore | None = None) -> None:
        self._store = store or JsonStore(base_dir or DEFAULT_STORAGE_DIR, CUSTOMERS_STORAGE_KEY)
        self._customers: list[Customer] | None = None
        self._lock = asyncio.Lock()

    async def _ensure_loaded(self) -> list[Customer]:
        if self._customers is None:
            data = await self._store.async_load()
            if data is None:
                self._customers = []
            elif not isinstance(data, list):
                raise StorageCorruptError("customers: expected a list")
            else:
                try:
                    self._customers = [Customer.from_dict(validate_customer_payload(item)) for item in data]
                except ValidationError as err:
                    raise StorageCorruptError(f"customers: {err}") from err
        return self._customers

    async def _commit(self, customers: list[Customer]) -> None:
        await self._store.async_save([customer.to_dict() for customer in customers])
        self._customers = customers

    async def async_list(self) -> list[Customer]:
        async with self._lock:
            return [Customer(c.name, c.phone, c.address) for c in await self._ensure_loaded()]

    async def async_save_all(self, customers: Iterable[Customer]) -> None:
        normalised = [_normalise(customer) for customer in customers]
        async with self._lock:
            await self._commit(normalised)

    async def async_remember(self, customer: Customer) -> bool:
        """Add ``customer`` or refresh the address of a known one.

        Returns ``True`` when a new entry was added.
        """

        normalised = _normalise(customer)
        if not normalised.name.strip():
            raise ValidationError(["name: required"])
        key = (normalised.name.casefold(), normalised.phone)
        async with self._lock:
            customers = await self._ensure_loaded()
            for index, existing in enumerate(customers):
                if (existing.name.casefold(), existing.phone) == key:
                    if existing.address != normalised.address:
                        await self._commit([*customers[:index], normalised, *customers[index + 1 :]])
                    return False
            await self._commit([*customers, normalised])
            _LOGGER.debug("Saved customer %s", normalised.name)
            return True

    async def async_search(self, needle: str) -> list[Customer]:
        """Customers whose name (case-insensitive) or phone contains ``needle``."""

        needle = needle.strip()
        customers = await self.async_list()
        if not needle:
            return customers
        return [c for c in customers if needle.casefold() in c.name.casefold() or needle in c.phone]


__all__ = ["CustomerBook"]
