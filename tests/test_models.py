from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from repair_desk.cloudsync.canonical import is_equal
from repair_desk.models import (
    DeviceKyc,
    OrderRecord,
    OrderStatus,
    RepairStation,
    Warranty,
    format_timestamp,
    normalise_photos,
    parse_timestamp,
)
from repair_desk.validation import order_from_payload

UTC = timezone.utc  # noqa: UP017


def test_round_trip_through_persisted_form(make_order) -> None:
    record = make_order(pickup_date=datetime(2024, 5, 1, 9, 30, tzinfo=UTC))
    record.repair_partner.station = RepairStation.SERVICE_CENTER
    record.device_kyc = DeviceKyc(
        power_adapter=True,
        warranty=Warranty(on_warranty=True, expiry=datetime(2025, 1, 1, tzinfo=UTC)),
        photos=["file:///a.jpg"],
        additional_details=["scratched lid"],
        lock_code="1234",
    )
    text = json.dumps(record.to_dict())
    restored = order_from_payload(json.loads(text))
    assert is_equal(record, restored)
    assert restored == record


def test_persisted_form_keeps_nulls_explicit(make_order) -> None:
    data = make_order(customer_name=None).to_dict()
    assert "customer" in data and data["customer"] is None
    assert data["estimate"]["pickup_date"] is None
    assert data["repair_partner"]["station"] is None
    assert data["device_kyc"]["photos"] == [None, None, None, None]


def test_walk_in_order_without_customer_is_valid(make_order) -> None:
    record = order_from_payload(make_order(customer_name=None).to_dict())
    assert record.customer is None
    assert record.status is OrderStatus.PENDING


def test_photos_always_have_four_slots() -> None:
    assert normalise_photos(None) == [None] * 4
    assert normalise_photos(["a", "", None]) == ["a", None, None, None]
    assert normalise_photos(["a", "b", "c", "d", "e"]) == ["a", "b", "c", "d"]
    assert DeviceKyc(photos=["x"]).photos == ["x", None, None, None]


def test_timestamps_serialise_as_utc_instants() -> None:
    local = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(local) == "2024-05-01T10:00:00Z"
    assert format_timestamp(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00Z"
    parsed = parse_timestamp("2024-05-01T10:00:00Z")
    assert parsed == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
    assert parse_timestamp("") is None


def test_status_property(make_order) -> None:
    record = make_order(status=OrderStatus.DELIVERED)
    assert record.status is OrderStatus.DELIVERED
    assert OrderRecord.from_dict(record.to_dict()).status is OrderStatus.DELIVERED
