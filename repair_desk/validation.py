"""Voluptuous schemas guarding everything that reaches the record stores."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

import voluptuous as vol

from .const import PHOTO_SLOTS
from .identity import is_valid_order_id
from .models import (
    ORDER_STATUSES,
    REPAIR_STATIONS,
    OrderRecord,
    OrderStatus,
    format_timestamp,
    normalise_photos,
    parse_timestamp,
)


class ValidationError(ValueError):
    """Raised when a payload does not describe a valid record."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors) or ["<root>: invalid record"]
        super().__init__("; ".join(self.errors))


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        raise vol.Invalid("expected text")
    if isinstance(value, str | int | float | Decimal):
        return str(value)
    raise vol.Invalid("expected text")


def _required_text(value: Any) -> str:
    text = _text(value)
    if not text.strip():
        raise vol.Invalid("required value is blank")
    return text


def _money(value: Any) -> str:
    text = _required_text(value).strip()
    try:
        amount = Decimal(text)
    except InvalidOperation as err:
        raise vol.Invalid(f"not a decimal amount: {text!r}") from err
    if not amount.is_finite():
        raise vol.Invalid(f"not a decimal amount: {text!r}")
    return text


def _timestamp(value: Any) -> str | None:
    try:
        ts = parse_timestamp(value)
    except (TypeError, ValueError) as err:
        raise vol.Invalid(f"not an ISO-8601 timestamp: {value!r}") from err
    return format_timestamp(ts)


def _text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        raise vol.Invalid("expected a list of text")
    return [_text(item) for item in value]


def _photos(value: Any) -> list[str | None]:
    if value is None:
        return normalise_photos(None)
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        raise vol.Invalid("expected a list of photo references")
    if len(value) > PHOTO_SLOTS:
        raise vol.Invalid(f"at most {PHOTO_SLOTS} photos are allowed")
    for item in value:
        if item is not None and not isinstance(item, str):
            raise vol.Invalid("photo references must be text or null")
    return normalise_photos(value)


def _order_id(value: Any) -> str:
    if not isinstance(value, str) or not is_valid_order_id(value):
        raise vol.Invalid(f"invalid order id: {value!r}")
    return value


_OPTIONAL_TS = vol.Any(None, _timestamp)

RECEIVER_SCHEMA = vol.Schema(
    {
        vol.Required("name"): _required_text,
        vol.Required("designation"): _required_text,
    }
)

CUSTOMER_SCHEMA = vol.Schema(
    {
        vol.Required("name"): _text,
        vol.Optional("phone", default=""): _text,
        vol.Optional("address", default=""): _text,
    }
)

ORDER_DETAILS_SCHEMA = vol.Schema(
    {
        vol.Required("device_model"): _required_text,
        vol.Optional("status", default=OrderStatus.PENDING.value): vol.In(
            ORDER_STATUSES, msg=f"status must be one of {', '.join(ORDER_STATUSES)}"
        ),
        vol.Optional("problems", default=list): _text_list,
    }
)

ESTIMATE_SCHEMA = vol.Schema(
    {
        vol.Required("repair_cost"): _money,
        vol.Required("advance_paid"): _money,
        vol.Optional("pickup_date", default=None): _OPTIONAL_TS,
        vol.Optional("pickup_time", default=None): _OPTIONAL_TS,
    }
)

REPAIR_PARTNER_SCHEMA = vol.Schema(
    {
        vol.Optional("station", default=None): vol.Any(
            None, vol.In(REPAIR_STATIONS, msg=f"station must be one of {', '.join(REPAIR_STATIONS)}")
        ),
        vol.Optional("in_house_option", default=""): _text,
        vol.Optional("service_center_option", default=""): _text,
        vol.Optional("pickup_date", default=None): _OPTIONAL_TS,
        vol.Optional("pickup_time", default=None): _OPTIONAL_TS,
    }
)

WARRANTY_SCHEMA = vol.Schema(
    {
        vol.Optional("on_warranty", default=False): bool,
        vol.Optional("expiry", default=None): _OPTIONAL_TS,
    }
)

DEVICE_KYC_SCHEMA = vol.Schema(
    {
        vol.Optional("power_adapter", default=False): bool,
        vol.Optional("keyboard", default=False): bool,
        vol.Optional("mouse", default=False): bool,
        vol.Optional("warranty", default=dict): WARRANTY_SCHEMA,
        vol.Optional("photos", default=None): _photos,
        vol.Optional("other_accessories", default=""): _text,
        vol.Optional("additional_details", default=list): _text_list,
        vol.Optional("lock_code", default=""): _text,
    }
)

ORDER_SCHEMA = vol.Schema(
    {
        vol.Required("id"): _order_id,
        vol.Required("receiver"): RECEIVER_SCHEMA,
        vol.Optional("customer", default=None): vol.Any(None, CUSTOMER_SCHEMA),
        vol.Required("order_details"): ORDER_DETAILS_SCHEMA,
        vol.Required("estimate"): ESTIMATE_SCHEMA,
        vol.Optional("repair_partner", default=dict): REPAIR_PARTNER_SCHEMA,
        vol.Optional("device_kyc", default=dict): DEVICE_KYC_SCHEMA,
    }
)

DIRECTORY_ENTRY_SCHEMA = vol.Schema(
    {
        vol.Required("id"): _required_text,
        vol.Required("name"): _required_text,
        vol.Optional("contact", default=""): _text,
        vol.Optional("address", default=None): vol.Any(None, _text),
        vol.Optional("description", default=None): vol.Any(None, _text),
        vol.Optional("remote_id", default=None): vol.Any(None, _required_text),
    }
)


def collate_issue_messages(err: vol.Invalid) -> list[str]:
    """Flatten a voluptuous error into ``path: message`` strings."""

    errors = err.errors if isinstance(err, vol.MultipleInvalid) else [err]
    messages: list[str] = []
    for issue in errors:
        location = ".".join(str(part) for part in issue.path) or "<root>"
        messages.append(f"{location}: {issue.msg}")
    return messages


def _run_schema(schema: vol.Schema, payload: Any) -> dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError(["<root>: expected an object"])
    try:
        return schema(dict(payload))
    except vol.Invalid as err:
        raise ValidationError(collate_issue_messages(err)) from err


def validate_order_payload(payload: Any) -> dict[str, Any]:
    """Return the normalised persisted form of ``payload``.

    Missing optional sections are filled with explicit defaults, timestamps
    are rewritten as UTC instants and ``photos`` always has four slots.
    """

    return _run_schema(ORDER_SCHEMA, payload)


def order_from_payload(payload: Any) -> OrderRecord:
    return OrderRecord.from_dict(validate_order_payload(payload))


def validate_order(record: OrderRecord) -> OrderRecord:
    """Validate an in-memory record and return its normalised copy."""

    return order_from_payload(record.to_dict())


def validate_customer_payload(payload: Any) -> dict[str, Any]:
    return _run_schema(CUSTOMER_SCHEMA, payload)


def validate_directory_payload(payload: Any) -> dict[str, Any]:
    return _run_schema(DIRECTORY_ENTRY_SCHEMA, payload)


__all__ = [
    "CUSTOMER_SCHEMA",
    "ORDER_SCHEMA",
    "DIRECTORY_ENTRY_SCHEMA",
    "ValidationError",
    "collate_issue_messages",
    "order_from_payload",
    "validate_customer_payload",
    "validate_directory_payload",
    "validate_order",
    "validate_order_payload",
]
