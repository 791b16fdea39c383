from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Response, status

from repair_desk.const import DIRECTORY_KINDS
from repair_desk.validation import ValidationError, validate_directory_payload, validate_order_payload

from .auth import READ_ROLES, WRITE_ROLES, Principal, principal_dependency


@dataclass
class StoredDocument:
    document_id: str
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    def render(self) -> dict[str, Any]:
        return {
            **self.payload,
            "$id": self.document_id,
            "$createdAt": self.created_at.isoformat(),
            "$updatedAt": self.updated_at.isoformat(),
        }


class DocumentState:
    """In-memory reference implementation of the hosted document store."""

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, StoredDocument]] = {}
        self.directory: dict[tuple[str, str], dict[str, StoredDocument]] = {}

    def _orders(self, project_id: str) -> dict[str, StoredDocument]:
        return self.orders.setdefault(project_id, {})

    def _entries(self, project_id: str, kind: str) -> dict[str, StoredDocument]:
        if kind not in DIRECTORY_KINDS:
            raise HTTPException(status_code=404, detail=f"unknown collection {kind}")
        return self.directory.setdefault((project_id, kind), {})

    # ------------------------------------------------------------------
    def create_order(self, project_id: str, payload: dict[str, Any]) -> StoredDocument:
        data = _validated_order(payload)
        collection = self._orders(project_id)
        order_id = data["id"]
        if order_id in collection:
            raise HTTPException(status_code=409, detail=f"order {order_id} already exists")
        now = datetime.now(tz=UTC)
        document = StoredDocument(order_id, data, now, now)
        collection[order_id] = document
        return document

    def get_order(self, project_id: str, order_id: str) -> StoredDocument:
        document = self._orders(project_id).get(order_id)
        if document is None:
            raise HTTPException(status_code=404, detail=f"order {order_id} not found")
        return document

    def update_order(self, project_id: str, order_id: str, payload: dict[str, Any]) -> StoredDocument:
        document = self.get_order(project_id, order_id)
        body = dict(payload)
        body.setdefault("id", order_id)
        if body["id"] != order_id:
            raise HTTPException(status_code=400, detail="document id does not match path")
        document.payload = _validated_order(body)
        document.updated_at = datetime.now(tz=UTC)
        return document

    def delete_order(self, project_id: str, order_id: str) -> None:
        if self._orders(project_id).pop(order_id, None) is None:
            raise HTTPException(status_code=404, detail=f"order {order_id} not found")

    def list_orders(self, project_id: str) -> list[dict[str, Any]]:
        return [document.render() for document in self._orders(project_id).values()]

    # ------------------------------------------------------------------
    def create_entry(self, project_id: str, kind: str, payload: dict[str, Any]) -> StoredDocument:
        entries = self._entries(project_id, kind)
        entry_id = uuid.uuid4().hex
        now = datetime.now(tz=UTC)
        document = StoredDocument(entry_id, _validated_entry(entry_id, payload), now, now)
        entries[entry_id] = document
        return document

    def update_entry(self, project_id: str, kind: str, entry_id: str, payload: dict[str, Any]) -> StoredDocument:
        document = self._entries(project_id, kind).get(entry_id)
        if document is None:
            raise HTTPException(status_code=404, detail=f"{kind} entry {entry_id} not found")
        document.payload = _validated_entry(entry_id, payload)
        document.updated_at = datetime.now(tz=UTC)
        return document

    def list_entries(self, project_id: str, kind: str) -> list[dict[str, Any]]:
        return [document.render() for document in self._entries(project_id, kind).values()]


def _validated_order(payload: dict[str, Any]) -> dict[str, Any]:
    body = {key: value for key, value in payload.items() if not str(key).startswith("$")}
    try:
        return validate_order_payload(body)
    except ValidationError as err:
        raise HTTPException(status_code=422, detail={"error": "invalid_document", "issues": err.errors}) from err


def _validated_entry(entry_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    body = {key: value for key, value in payload.items() if key not in {"id", "remote_id"}}
    try:
        data = validate_directory_payload({**body, "id": entry_id})
    except ValidationError as err:
        raise HTTPException(status_code=422, detail={"error": "invalid_document", "issues": err.errors}) from err
    data.pop("remote_id", None)
    return data


def create_app(*, api_key: str | None = None) -> FastAPI:
    app = FastAPI()
    state = DocumentState()
    app.state.state = state
    app.state.api_key = api_key

    @app.post("/orders", status_code=status.HTTP_201_CREATED)
    async def handle_order_create(
        data: dict[str, Any],
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*WRITE_ROLES)
        return state.create_order(principal.project_id, data).render()

    @app.get("/orders")
    async def handle_order_list(
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*READ_ROLES)
        return {"documents": state.list_orders(principal.project_id)}

    @app.get("/orders/{order_id}")
    async def handle_order_detail(
        order_id: str,
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*READ_ROLES)
        return state.get_order(principal.project_id, order_id).render()

    @app.put("/orders/{order_id}")
    async def handle_order_update(
        order_id: str,
        data: dict[str, Any],
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*WRITE_ROLES)
        return state.update_order(principal.project_id, order_id, data).render()

    @app.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def handle_order_delete(
        order_id: str,
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> Response:
        principal.require(*WRITE_ROLES)
        state.delete_order(principal.project_id, order_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/directory/{kind}", status_code=status.HTTP_201_CREATED)
    async def handle_entry_create(
        kind: str,
        data: dict[str, Any],
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*WRITE_ROLES)
        document = state.create_entry(principal.project_id, kind, data)
        return {"id": document.document_id, **document.render()}

    @app.put("/directory/{kind}/{entry_id}")
    async def handle_entry_update(
        kind: str,
        entry_id: str,
        data: dict[str, Any],
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*WRITE_ROLES)
        return state.update_entry(principal.project_id, kind, entry_id, data).render()

    @app.get("/directory/{kind}")
    async def handle_entry_list(
        kind: str,
        principal: Principal = Depends(principal_dependency),  # noqa: B008
    ) -> dict[str, Any]:
        principal.require(*READ_ROLES)
        return {"documents": state.list_entries(principal.project_id, kind)}

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8080)


if __name__ == "__main__":
    main()
