"""In-memory filtering of order collections for presentation."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any

from .models import OrderRecord, OrderStatus


def _status_value(value: Any) -> str:
    return value.value if isinstance(value, OrderStatus) else str(value)


def _local_day(value: date | datetime, tz: tzinfo | None) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


@dataclass(slots=True)
class FilterSpec:
    """Independent predicates combined with AND; ``None``/empty means "any"."""

    service_center: str | None = None
    service_provider: str | None = None
    pickup_date: date | datetime | None = None
    customer_search: str = ""
    order_status: str | OrderStatus | Collection[str | OrderStatus] | None = None

    def statuses(self) -> frozenset[str] | None:
        value = self.order_status
        if value is None:
            return None
        if isinstance(value, OrderStatus | str):
            return frozenset({_status_value(value)}) if _status_value(value) else None
        values = frozenset(_status_value(item) for item in value)
        return values or None

    def matches(self, record: OrderRecord, *, tz: tzinfo | None = None) -> bool:
        partner = record.repair_partner
        if self.service_center and partner.service_center_option != self.service_center:
            return False
        if self.service_provider and partner.in_house_option != self.service_provider:
            return False

        if self.pickup_date is not None:
            pickup = record.estimate.pickup_date
            if pickup is None or _local_day(pickup, tz) != _local_day(self.pickup_date, tz):
                return False

        needle = (self.customer_search or "").strip()
        if needle:
            customer = record.customer
            if customer is None:
                return False
            if needle.casefold() not in customer.name.casefold() and needle not in customer.phone:
                return False

        statuses = self.statuses()
        return statuses is None or record.status.value in statuses


def filter_orders(
    records: Iterable[OrderRecord],
    spec: FilterSpec | None = None,
    *,
    tz: tzinfo | None = None,
) -> list[OrderRecord]:
    """Return the records matching ``spec`` in their original order.

    Pickup dates are compared by calendar day in ``tz`` (the host's local
    zone when omitted). Records are returned as-is; nothing is copied or
    mutated.
    """

    if spec is None:
        return list(records)
    return [record for record in records if spec.matches(record, tz=tz)]


__all__ = ["FilterSpec", "filter_orders"]
