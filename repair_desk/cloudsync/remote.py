"""Remote document store contract and its HTTP implementation."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout

from ..const import DEFAULT_REQUEST_TIMEOUT
from ..models import OrderRecord
from ..validation import ValidationError, order_from_payload

_LOGGER = logging.getLogger(__name__)

META_PREFIX = "$"


class RemoteStoreError(RuntimeError):
    """Raised when the remote store rejects or cannot serve a request."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NetworkError(RemoteStoreError):
    """Transport failure; the request may or may not have been applied."""


class NotFoundError(RemoteStoreError):
    """The addressed document does not exist remotely."""


class ConflictError(RemoteStoreError):
    """A document with the same id already exists remotely."""


class RemoteOrderStore(Protocol):
    """Operations the reconciliation engine needs from the remote side.

    Implementations do not retry and do not impose their own deadlines
    beyond a transport timeout; ``get_order`` returns ``None`` for a
    missing document.
    """

    async def create_order(self, record: OrderRecord) -> Mapping[str, Any]: ...

    async def get_order(self, order_id: str) -> OrderRecord | None: ...

    async def update_order(self, order_id: str, record: OrderRecord) -> Mapping[str, Any]: ...

    async def delete_order(self, order_id: str) -> None: ...

    async def list_orders(self) -> list[OrderRecord]: ...


class RemoteDirectory(Protocol):
    """Remote collections for service centers and providers."""

    async def create_entry(self, kind: str, payload: Mapping[str, Any]) -> str: ...

    async def update_entry(self, kind: str, remote_id: str, payload: Mapping[str, Any]) -> None: ...

    async def list_entries(self, kind: str) -> list[dict[str, Any]]: ...


def strip_metadata(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Drop server bookkeeping keys (``$id``, ``$createdAt`` ...)."""

    return {key: value for key, value in payload.items() if not str(key).startswith(META_PREFIX)}


class DocumentStoreClient:
    """aiohttp client for the hosted document database."""

    def __init__(
        self,
        base_url: str,
        project_id: str,
        *,
        api_key: str | None = None,
        session: ClientSession | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.project_id = project_id
        self._api_key = api_key
        self._session = session
        self._owns_session = session is None
        self._timeout = ClientTimeout(total=timeout)

    async def __aenter__(self) -> DocumentStoreClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.async_close()

    async def async_close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> ClientSession:
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Project-ID": self.project_id,
            "X-Roles": "device",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(self, method: str, path: str, *, payload: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with self._get_session().request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except (ClientError, asyncio.TimeoutError) as err:
            raise NetworkError(f"{method} {path} failed: {err}") from err

        if status == 404:
            raise NotFoundError(f"{method} {path}: not found", status=status)
        if status == 409:
            raise ConflictError(f"{method} {path}: already exists", status=status)
        if status >= 400:
            raise RemoteStoreError(f"{method} {path} failed: HTTP {status} {text}", status=status)
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as err:
            raise RemoteStoreError(f"{method} {path}: malformed response body", status=status) from err

    # ------------------------------------------------------------------
    async def create_order(self, record: OrderRecord) -> Mapping[str, Any]:
        data = await self._request("POST", "/orders", payload=record.to_dict())
        _LOGGER.debug("Created remote order %s", record.id)
        return data if isinstance(data, Mapping) else {}

    async def get_order(self, order_id: str) -> OrderRecord | None:
        try:
            data = await self._request("GET", f"/orders/{order_id}")
        except NotFoundError:
            return None
        if not isinstance(data, Mapping):
            raise RemoteStoreError(f"GET /orders/{order_id}: expected a document")
        return order_from_payload(strip_metadata(data))

    async def update_order(self, order_id: str, record: OrderRecord) -> Mapping[str, Any]:
        data = await self._request("PUT", f"/orders/{order_id}", payload=record.to_dict())
        return data if isinstance(data, Mapping) else {}

    async def delete_order(self, order_id: str) -> None:
        await self._request("DELETE", f"/orders/{order_id}")

    async def list_orders(self) -> list[OrderRecord]:
        data = await self._request("GET", "/orders")
        documents = data.get("documents") if isinstance(data, Mapping) else None
        if not isinstance(documents, list):
            return []
        records: list[OrderRecord] = []
        for item in documents:
            if not isinstance(item, Mapping):
                continue
            try:
                records.append(order_from_payload(strip_metadata(item)))
            except ValidationError as err:
                _LOGGER.warning("Skipping invalid remote order %s: %s", item.get("$id") or item.get("id"), err)
        return records

    # ------------------------------------------------------------------
    async def create_entry(self, kind: str, payload: Mapping[str, Any]) -> str:
        data = await self._request("POST", f"/directory/{kind}", payload=dict(payload))
        remote_id = data.get("id") if isinstance(data, Mapping) else None
        if not remote_id:
            raise RemoteStoreError(f"POST /directory/{kind}: response missing id")
        return str(remote_id)

    async def update_entry(self, kind: str, remote_id: str, payload: Mapping[str, Any]) -> None:
        await self._request("PUT", f"/directory/{kind}/{remote_id}", payload=dict(payload))

    async def list_entries(self, kind: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/directory/{kind}")
        documents = data.get("documents") if isinstance(data, Mapping) else None
        if not isinstance(documents, list):
            return []
        return [dict(item) for item in documents if isinstance(item, Mapping)]


__all__ = [
    "ConflictError",
    "DocumentStoreClient",
    "NetworkError",
    "NotFoundError",
    "RemoteDirectory",
    "RemoteOrderStore",
    "RemoteStoreError",
    "strip_metadata",
]
