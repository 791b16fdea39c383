from __future__ import annotations

from repair_desk.cloudsync.canonical import canonical_digest, canonical_json, diff_paths, is_equal
from repair_desk.models import OrderStatus
from repair_desk.validation import order_from_payload


def test_identical_records_are_equal(make_order) -> None:
    assert is_equal(make_order(), make_order())
    assert canonical_digest(make_order()) == canonical_digest(make_order())


def test_key_order_does_not_matter(make_order) -> None:
    payload = make_order().to_dict()
    reordered = dict(reversed(list(payload.items())))
    reordered["estimate"] = dict(reversed(list(payload["estimate"].items())))
    assert is_equal(make_order(), order_from_payload(reordered))


def test_missing_optional_equals_explicit_null(make_order) -> None:
    payload = make_order(customer_name=None).to_dict()
    del payload["customer"]
    del payload["repair_partner"]
    assert is_equal(make_order(customer_name=None), order_from_payload(payload))


def test_money_is_compared_as_text(make_order) -> None:
    assert not is_equal(make_order(repair_cost="120"), make_order(repair_cost="120.00"))


def test_single_field_divergence(make_order) -> None:
    local = make_order(status=OrderStatus.DELIVERED)
    remote = make_order(status=OrderStatus.PENDING)
    assert not is_equal(local, remote)
    assert diff_paths(local, remote) == ["order_details.status"]


def test_canonical_json_is_compact_and_sorted(make_order) -> None:
    text = canonical_json(make_order())
    assert text.startswith('{"customer":')
    assert ", " not in text
