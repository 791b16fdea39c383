from __future__ import annotations

import csv
import io
from datetime import datetime, timezone

from repair_desk.export import CSV_COLUMNS, orders_to_csv, write_orders_csv
from repair_desk.models import OrderStatus

UTC = timezone.utc  # noqa: UP017


def _rows(text: str) -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(text)))


def test_header_and_row(make_order) -> None:
    record = make_order(
        "o1",
        status=OrderStatus.REPAIRED,
        pickup_date=datetime(2024, 5, 1, 10, 0, tzinfo=UTC),
        service_center="Central",
    )
    text = orders_to_csv([record], tz=UTC)
    assert text.splitlines()[0] == ",".join(CSV_COLUMNS)
    row = _rows(text)[0]
    assert row["Order ID"] == "o1"
    assert row["Customer Name"] == "Alice Smith"
    assert row["Customer Number"] == "5550101"
    assert row["Order Status"] == "Repaired"
    assert row["Pickup Date"] == "2024-05-01"
    assert row["Service Center"] == "Central"
    assert row["Service Provider"] == "N/A"
    assert row["Total Estimate"] == "120.00"


def test_missing_values_render_as_na(make_order) -> None:
    row = _rows(orders_to_csv([make_order("w", customer_name=None)]))[0]
    assert row["Customer Name"] == "N/A"
    assert row["Customer Number"] == "N/A"
    assert row["Pickup Date"] == "N/A"


def test_write_to_file(tmp_path, make_order) -> None:
    path = write_orders_csv([make_order("a"), make_order("b")], tmp_path / "out" / "orders.csv")
    assert len(_rows(path.read_text(encoding="utf-8"))) == 2
