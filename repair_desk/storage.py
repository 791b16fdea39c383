"""On-device persistence for repair orders.

The whole order list lives in one versioned JSON blob. Every mutation
rewrites the blob through a temp file and ``Path.replace`` so a reader never
observes a half-written collection.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from .const import DEFAULT_STORAGE_DIR, ORDERS_STORAGE_KEY, STORAGE_VERSION
from .models import OrderRecord
from .validation import ValidationError, validate_order, validate_order_payload

_LOGGER = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Base class for local persistence failures."""


class StorageWriteError(StorageError):
    """Raised when the blob could not be written; in-memory state is unchanged."""


class StorageCorruptError(StorageError):
    """Raised when the persisted blob cannot be read back."""


class JsonStore:
    """Versioned JSON document stored under a fixed key."""

    def __init__(self, base_dir: str | Path, key: str, version: int = STORAGE_VERSION) -> None:
        self.key = key
        self.version = version
        self.path = Path(base_dir) / f"{key}.json"
        self._lock = asyncio.Lock()

    async def async_load(self) -> Any | None:
        """Return the stored data or ``None`` when nothing was saved yet."""

        async with self._lock:
            if not self.path.exists():
                return None
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
                raise StorageCorruptError(f"{self.path}: unreadable storage blob: {err}") from err
        if not isinstance(raw, dict) or "data" not in raw:
            raise StorageCorruptError(f"{self.path}: missing data envelope")
        stored_version = raw.get("version")
        if stored_version != self.version:
            _LOGGER.debug("Loading %s written with version %s (current %s)", self.key, stored_version, self.version)
        return raw["data"]

    async def async_save(self, data: Any) -> None:
        envelope = {"version": self.version, "key": self.key, "data": data}
        try:
            txt = json.dumps(envelope, ensure_ascii=False, indent=2) + "\n"
        except (TypeError, ValueError) as err:
            raise StorageWriteError(f"{self.key}: data is not serialisable: {err}") from err
        async with self._lock:
            try:
                self._write_blob(txt)
            except OSError as err:
                raise StorageWriteError(f"{self.path}: write failed: {err}") from err

    async def async_remove(self) -> None:
        async with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as err:
                raise StorageWriteError(f"{self.path}: remove failed: {err}") from err

    def _write_blob(self, txt: str) -> None:
        tmp = self.path.with_suffix(".tmp")
        tmp.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(txt, encoding="utf-8")
        tmp.replace(self.path)


def _clone(record: OrderRecord) -> OrderRecord:
    return OrderRecord.from_dict(record.to_dict())


class OrderStore:
    """Owner of the local order collection.

    Callers only ever receive copies; the live list is replaced wholesale
    after a successful write and left untouched when the write fails.
    """

    def __init__(self, store: JsonStore | None = None, *, base_dir: str | Path | None = None) -> None:
        self._store = store or JsonStore(base_dir or DEFAULT_STORAGE_DIR, ORDERS_STORAGE_KEY)
        self._records: list[OrderRecord] | None = None
        self._lock = asyncio.Lock()

    async def _ensure_loaded(self) -> list[OrderRecord]:
        if self._records is not None:
            return self._records
        data = await self._store.async_load()
        if data is None:
            self._records = []
            return self._records
        if not isinstance(data, list):
            raise StorageCorruptError(f"{self._store.key}: expected a list of orders")
        records: list[OrderRecord] = []
        for index, payload in enumerate(data):
            try:
                records.append(OrderRecord.from_dict(validate_order_payload(payload)))
            except ValidationError as err:
                raise StorageCorruptError(f"{self._store.key}[{index}]: {err}") from err
        self._records = records
        _LOGGER.debug("Loaded %d orders from %s", len(records), self._store.path)
        return self._records

    async def _commit(self, records: list[OrderRecord]) -> None:
        await self._store.async_save([record.to_dict() for record in records])
        self._records = records

    @property
    def path(self) -> Path:
        return self._store.path

    @property
    def cached_count(self) -> int | None:
        """Number of records held in memory, ``None`` before the first load."""

        return None if self._records is None else len(self._records)

    # ------------------------------------------------------------------
    async def async_load_all(self) -> list[OrderRecord]:
        async with self._lock:
            records = await self._ensure_loaded()
            return [_clone(record) for record in records]

    async def async_get(self, order_id: str) -> OrderRecord | None:
        async with self._lock:
            records = await self._ensure_loaded()
            for record in records:
                if record.id == order_id:
                    return _clone(record)
        return None

    async def async_create(self, record: OrderRecord) -> OrderRecord:
        """Append ``record`` and persist; duplicate ids are rejected."""

        normalised = validate_order(record)
        async with self._lock:
            records = await self._ensure_loaded()
            if any(existing.id == normalised.id for existing in records):
                raise ValidationError([f"id: order {normalised.id} already exists"])
            await self._commit([*records, normalised])
        _LOGGER.debug("Created order %s", normalised.id)
        return _clone(normalised)

    async def async_update(self, order_id: str, record: OrderRecord) -> bool:
        """Replace the order with ``order_id``; returns ``False`` when absent."""

        if record.id != order_id:
            raise ValidationError([f"id: cannot change order id {order_id} to {record.id}"])
        normalised = validate_order(record)
        async with self._lock:
            records = await self._ensure_loaded()
            if not any(existing.id == order_id for existing in records):
                _LOGGER.debug("Update skipped, order %s not found", order_id)
                return False
            await self._commit([normalised if existing.id == order_id else existing for existing in records])
        return True

    async def async_delete(self, order_id: str) -> bool:
        async with self._lock:
            records = await self._ensure_loaded()
            remaining = [existing for existing in records if existing.id != order_id]
            if len(remaining) == len(records):
                return False
            await self._commit(remaining)
        _LOGGER.debug("Deleted order %s", order_id)
        return True

    async def async_upsert(self, record: OrderRecord) -> bool:
        """Create or replace ``record``; returns ``True`` when it was created."""

        normalised = validate_order(record)
        async with self._lock:
            records = await self._ensure_loaded()
            if any(existing.id == normalised.id for existing in records):
                await self._commit([normalised if existing.id == normalised.id else existing for existing in records])
                return False
            await self._commit([*records, normalised])
        return True

    async def async_clear(self) -> None:
        async with self._lock:
            await self._store.async_remove()
            self._records = []


__all__ = [
    "JsonStore",
    "OrderStore",
    "StorageCorruptError",
    "StorageError",
    "StorageWriteError",
]
