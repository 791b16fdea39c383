from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from repair_desk.cloudsync.remote import ConflictError, NotFoundError
from repair_desk.models import (
    Customer,
    Estimate,
    OrderDetails,
    OrderRecord,
    OrderStatus,
    Receiver,
    RepairPartner,
)
from repair_desk.storage import OrderStore
from repair_desk.utils.logging import reset_warnings


def build_order(
    order_id: str = "lx2k9a_abcd1234",
    *,
    status: OrderStatus = OrderStatus.PENDING,
    customer_name: str | None = "Alice Smith",
    phone: str = "5550101",
    device_model: str = "ThinkPad T14",
    repair_cost: str = "120.00",
    pickup_date: datetime | None = None,
    service_center: str = "",
    service_provider: str = "",
) -> OrderRecord:
    return OrderRecord(
        id=order_id,
        receiver=Receiver(name="Sam", designation="Technician"),
        customer=Customer(name=customer_name, phone=phone, address="12 Main St") if customer_name is not None else None,
        order_details=OrderDetails(device_model=device_model, status=status, problems=["no power"]),
        estimate=Estimate(repair_cost=repair_cost, advance_paid="20", pickup_date=pickup_date),
        repair_partner=RepairPartner(in_house_option=service_provider, service_center_option=service_center),
    )


class FakeRemote:
    """In-memory stand-in for the remote document store."""

    def __init__(self, *, latency: float = 0.0) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.fail_times: Counter[str] = Counter()
        self.latency = latency
        self.in_flight = 0
        self.max_in_flight = 0

    def seed(self, record: OrderRecord) -> None:
        self.documents[record.id] = record.to_dict()

    def count(self, op: str, order_id: str | None = None) -> int:
        return sum(1 for name, ident in self.calls if name == op and (order_id is None or ident == order_id))

    async def _enter(self, op: str, order_id: str) -> None:
        self.calls.append((op, order_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
        finally:
            self.in_flight -= 1
        if order_id in self.failures:
            if self.fail_times[order_id] > 0:
                self.fail_times[order_id] -= 1
                if self.fail_times[order_id] == 0:
                    raise self.failures.pop(order_id)
            raise self.failures[order_id]

    async def create_order(self, record: OrderRecord) -> dict[str, Any]:
        await self._enter("create", record.id)
        if record.id in self.documents:
            raise ConflictError(f"{record.id} exists", status=409)
        self.documents[record.id] = record.to_dict()
        return {"id": record.id}

    async def get_order(self, order_id: str) -> OrderRecord | None:
        await self._enter("get", order_id)
        data = self.documents.get(order_id)
        return OrderRecord.from_dict(data) if data is not None else None

    async def update_order(self, order_id: str, record: OrderRecord) -> dict[str, Any]:
        await self._enter("update", order_id)
        if order_id not in self.documents:
            raise NotFoundError(f"{order_id} missing", status=404)
        self.documents[order_id] = record.to_dict()
        return {"id": order_id}

    async def delete_order(self, order_id: str) -> None:
        await self._enter("delete", order_id)
        if self.documents.pop(order_id, None) is None:
            raise NotFoundError(f"{order_id} missing", status=404)

    async def list_orders(self) -> list[OrderRecord]:
        self.calls.append(("list", "*"))
        return [OrderRecord.from_dict(data) for data in self.documents.values()]


@pytest.fixture
def make_order() -> Callable[..., OrderRecord]:
    return build_order


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def order_store(tmp_path) -> OrderStore:
    return OrderStore(base_dir=tmp_path)


@pytest.fixture(autouse=True)
def _clear_warn_once() -> None:
    reset_warnings()


@pytest.fixture
def remote_factory() -> type[FakeRemote]:
    return FakeRemote
