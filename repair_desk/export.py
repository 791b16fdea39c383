"""Read-only CSV projection of orders for sharing."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import datetime, tzinfo
from pathlib import Path

from .const import CSV_MISSING
from .models import OrderRecord

CSV_COLUMNS: tuple[str, ...] = (
    "Order ID",
    "Customer Name",
    "Customer Number",
    "Device Model",
    "Order Status",
    "Pickup Date",
    "Service Center",
    "Service Provider",
    "Total Estimate",
)


def _or_missing(value: str | None) -> str:
    if value is None:
        return CSV_MISSING
    text = str(value).strip()
    return text or CSV_MISSING


def _pickup_day(value: datetime | None, tz: tzinfo | None) -> str:
    if value is None:
        return CSV_MISSING
    return value.astimezone(tz).strftime("%Y-%m-%d")


def order_row(record: OrderRecord, *, tz: tzinfo | None = None) -> dict[str, str]:
    customer = record.customer
    partner = record.repair_partner
    return {
        "Order ID": _or_missing(record.id),
        "Customer Name": _or_missing(customer.name if customer else None),
        "Customer Number": _or_missing(customer.phone if customer else None),
        "Device Model": _or_missing(record.order_details.device_model),
        "Order Status": record.status.value,
        "Pickup Date": _pickup_day(record.estimate.pickup_date, tz),
        "Service Center": _or_missing(partner.service_center_option),
        "Service Provider": _or_missing(partner.in_house_option),
        "Total Estimate": _or_missing(record.estimate.repair_cost),
    }


def orders_to_csv(records: Iterable[OrderRecord], *, tz: tzinfo | None = None) -> str:
    """Render ``records`` as CSV text with a header row."""

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(CSV_COLUMNS), lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow(order_row(record, tz=tz))
    return buffer.getvalue()


def write_orders_csv(records: Iterable[OrderRecord], output: str | Path, *, tz: tzinfo | None = None) -> Path:
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(orders_to_csv(records, tz=tz))
    return path


__all__ = ["CSV_COLUMNS", "order_row", "orders_to_csv", "write_orders_csv"]
