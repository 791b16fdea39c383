"""Service center and service provider lookup lists.

These follow the same local/remote dual-store layout as orders but are only
ever moved wholesale in one direction: ``upload_all`` pushes the local list,
``download_all`` replaces it with the remote one. There is no reconciliation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from ..const import DEFAULT_STORAGE_DIR, DIRECTORY_KINDS
from ..identity import generate_order_id
from ..storage import JsonStore, StorageCorruptError
from ..validation import ValidationError, validate_directory_payload
from .remote import RemoteDirectory, RemoteStoreError, strip_metadata

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DirectoryEntry:
    id: str
    name: str
    contact: str = ""
    address: str | None = None
    description: str | None = None
    remote_id: str | None = None

    @classmethod
    def create(
        cls,
        name: str,
        contact: str = "",
        *,
        address: str | None = None,
        description: str | None = None,
    ) -> DirectoryEntry:
        return cls(id=generate_order_id(), name=name, contact=contact, address=address, description=description)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "address": self.address,
            "description": self.description,
            "remote_id": self.remote_id,
        }

    def remote_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "contact": self.contact,
            "address": self.address,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> DirectoryEntry:
        data = validate_directory_payload(payload)
        return cls(**data)


def _check_kind(kind: str) -> str:
    if kind not in DIRECTORY_KINDS:
        raise ValueError(f"unknown directory kind {kind!r}; expected one of {', '.join(DIRECTORY_KINDS)}")
    return kind


class DirectoryStore:
    """Local list of entries of one kind, persisted as a single blob."""

    def __init__(self, kind: str, *, base_dir: str | Path | None = None, store: JsonStore | None = None) -> None:
        self.kind = _check_kind(kind)
        self._store = store or JsonStore(base_dir or DEFAULT_STORAGE_DIR, kind)
        self._entries: list[DirectoryEntry] | None = None
        self._lock = asyncio.Lock()

    async def _ensure_loaded(self) -> list[DirectoryEntry]:
        if self._entries is None:
            data = await self._store.async_load()
            if data is None:
                self._entries = []
            elif not isinstance(data, list):
                raise StorageCorruptError(f"{self.kind}: expected a list of entries")
            else:
                try:
                    self._entries = [DirectoryEntry.from_dict(item) for item in data]
                except ValidationError as err:
                    raise StorageCorruptError(f"{self.kind}: {err}") from err
        return self._entries

    async def _commit(self, entries: list[DirectoryEntry]) -> None:
        await self._store.async_save([entry.to_dict() for entry in entries])
        self._entries = entries

    async def async_list(self) -> list[DirectoryEntry]:
        async with self._lock:
            return [replace(entry) for entry in await self._ensure_loaded()]

    async def async_upsert_local(self, entry: DirectoryEntry) -> bool:
        """Insert or replace ``entry`` by id; returns ``True`` when inserted."""

        normalised = DirectoryEntry.from_dict(entry.to_dict())
        async with self._lock:
            entries = await self._ensure_loaded()
            if any(existing.id == normalised.id for existing in entries):
                await self._commit([normalised if existing.id == normalised.id else existing for existing in entries])
                return False
            await self._commit([*entries, normalised])
            return True

    async def async_remove_local(self, entry_id: str) -> bool:
        async with self._lock:
            entries = await self._ensure_loaded()
            remaining = [entry for entry in entries if entry.id != entry_id]
            if len(remaining) == len(entries):
                return False
            await self._commit(remaining)
            return True

    async def async_replace_all(self, entries: Iterable[DirectoryEntry]) -> None:
        normalised = [DirectoryEntry.from_dict(entry.to_dict()) for entry in entries]
        async with self._lock:
            await self._commit(normalised)

    async def async_assign_remote_ids(self, remote_ids: Mapping[str, str]) -> int:
        """Record remote ids on the current entries; returns how many were set.

        Entries removed in the meantime are ignored.
        """

        async with self._lock:
            entries = await self._ensure_loaded()
            updated = [
                replace(entry, remote_id=remote_ids[entry.id]) if entry.id in remote_ids else entry
                for entry in entries
            ]
            assigned = sum(1 for entry in entries if entry.id in remote_ids)
            if assigned:
                await self._commit(updated)
            return assigned


@dataclass(slots=True)
class UploadResult:
    created: int = 0
    updated: int = 0
    failed: tuple[str, ...] = ()


class DirectorySync:
    """Explicit one-directional transfers between a store and the remote."""

    def __init__(self, store: DirectoryStore, remote: RemoteDirectory) -> None:
        self.store = store
        self.remote = remote

    @property
    def kind(self) -> str:
        return self.store.kind

    async def upload_all(self) -> UploadResult:
        """Push every local entry; entries without a remote id are created.

        Newly assigned remote ids are written back to the local store even
        when some other entries failed.
        """

        entries = await self.store.async_list()
        updated = 0
        failed: list[str] = []
        assigned: dict[str, str] = {}
        for entry in entries:
            try:
                if entry.remote_id:
                    await self.remote.update_entry(self.kind, entry.remote_id, entry.remote_payload())
                    updated += 1
                else:
                    assigned[entry.id] = await self.remote.create_entry(self.kind, entry.remote_payload())
            except RemoteStoreError as err:
                _LOGGER.warning("Uploading %s entry %s failed: %s", self.kind, entry.id, err)
                failed.append(entry.id)
        created = len(assigned)
        if assigned:
            # Only remote ids are written back; local edits made meanwhile stay.
            await self.store.async_assign_remote_ids(assigned)
        _LOGGER.info("Uploaded %s: %d created, %d updated, %d failed", self.kind, created, updated, len(failed))
        return UploadResult(created=created, updated=updated, failed=tuple(failed))

    async def download_all(self) -> list[DirectoryEntry]:
        """Replace the local list with the remote one."""

        documents = await self.remote.list_entries(self.kind)
        entries: list[DirectoryEntry] = []
        for document in documents:
            data = strip_metadata(document)
            remote_id = str(document.get("id") or document.get("$id") or "").strip()
            if not remote_id:
                _LOGGER.debug("Skipping %s document without id: %s", self.kind, document)
                continue
            data["id"] = remote_id
            data["remote_id"] = remote_id
            entries.append(DirectoryEntry.from_dict(data))
        await self.store.async_replace_all(entries)
        _LOGGER.info("Downloaded %d %s entries", len(entries), self.kind)
        return entries


__all__ = ["DirectoryEntry", "DirectorySync", "DirectoryStore", "UploadResult"]
