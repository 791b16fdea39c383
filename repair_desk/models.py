"""Typed representation of repair orders and their wire/persisted form."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .const import PHOTO_SLOTS


class OrderStatus(str, Enum):
    """Lifecycle states a repair order can be in."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    REPAIRED = "Repaired"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class RepairStation(str, Enum):
    """Where the repair is carried out."""

    IN_HOUSE = "InHouse"
    SERVICE_CENTER = "ServiceCenter"


ORDER_STATUSES: tuple[str, ...] = tuple(status.value for status in OrderStatus)
REPAIR_STATIONS: tuple[str, ...] = tuple(station.value for station in RepairStation)


def format_timestamp(value: datetime | None) -> str | None:
    """Serialise ``value`` as an absolute ISO-8601 instant in UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Return an aware UTC datetime for ``value`` or ``None`` when empty.

    Naive values are interpreted as UTC. Raises ``ValueError`` for text that
    is not ISO-8601.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if not text:
            return None
        ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def normalise_photos(photos: Sequence[Any] | None) -> list[str | None]:
    """Pad or coerce photo references to exactly ``PHOTO_SLOTS`` entries."""

    slots: list[str | None] = []
    for item in list(photos or [])[:PHOTO_SLOTS]:
        text = str(item).strip() if item is not None else ""
        slots.append(text or None)
    while len(slots) < PHOTO_SLOTS:
        slots.append(None)
    return slots


@dataclass(slots=True)
class Receiver:
    """Staff member who accepted the device."""

    name: str
    designation: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "designation": self.designation}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Receiver:
        return cls(name=str(payload["name"]), designation=str(payload["designation"]))


@dataclass(slots=True)
class Customer:
    name: str
    phone: str = ""
    address: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "phone": self.phone, "address": self.address}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Customer:
        return cls(
            name=str(payload.get("name") or ""),
            phone=str(payload.get("phone") or ""),
            address=str(payload.get("address") or ""),
        )


@dataclass(slots=True)
class OrderDetails:
    device_model: str
    status: OrderStatus = OrderStatus.PENDING
    problems: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_model": self.device_model,
            "status": self.status.value,
            "problems": list(self.problems),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> OrderDetails:
        return cls(
            device_model=str(payload["device_model"]),
            status=OrderStatus(payload.get("status") or OrderStatus.PENDING.value),
            problems=[str(item) for item in payload.get("problems") or []],
        )


@dataclass(slots=True)
class Estimate:
    """Cost estimate; money amounts are kept as the strings the user typed."""

    repair_cost: str
    advance_paid: str
    pickup_date: datetime | None = None
    pickup_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "repair_cost": self.repair_cost,
            "advance_paid": self.advance_paid,
            "pickup_date": format_timestamp(self.pickup_date),
            "pickup_time": format_timestamp(self.pickup_time),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Estimate:
        return cls(
            repair_cost=str(payload["repair_cost"]),
            advance_paid=str(payload["advance_paid"]),
            pickup_date=parse_timestamp(payload.get("pickup_date")),
            pickup_time=parse_timestamp(payload.get("pickup_time")),
        )


@dataclass(slots=True)
class RepairPartner:
    station: RepairStation | None = None
    in_house_option: str = ""
    service_center_option: str = ""
    pickup_date: datetime | None = None
    pickup_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "station": self.station.value if self.station else None,
            "in_house_option": self.in_house_option,
            "service_center_option": self.service_center_option,
            "pickup_date": format_timestamp(self.pickup_date),
            "pickup_time": format_timestamp(self.pickup_time),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> RepairPartner:
        station_raw = payload.get("station")
        return cls(
            station=RepairStation(station_raw) if station_raw else None,
            in_house_option=str(payload.get("in_house_option") or ""),
            service_center_option=str(payload.get("service_center_option") or ""),
            pickup_date=parse_timestamp(payload.get("pickup_date")),
            pickup_time=parse_timestamp(payload.get("pickup_time")),
        )


@dataclass(slots=True)
class Warranty:
    on_warranty: bool = False
    expiry: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"on_warranty": self.on_warranty, "expiry": format_timestamp(self.expiry)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Warranty:
        return cls(
            on_warranty=bool(payload.get("on_warranty", False)),
            expiry=parse_timestamp(payload.get("expiry")),
        )


@dataclass(slots=True)
class DeviceKyc:
    """Intake checklist captured when the device is handed over."""

    power_adapter: bool = False
    keyboard: bool = False
    mouse: bool = False
    warranty: Warranty = field(default_factory=Warranty)
    photos: list[str | None] = field(default_factory=lambda: [None] * PHOTO_SLOTS)
    other_accessories: str = ""
    additional_details: list[str] = field(default_factory=list)
    lock_code: str = ""

    def __post_init__(self) -> None:
        self.photos = normalise_photos(self.photos)

    def to_dict(self) -> dict[str, Any]:
        return {
            "power_adapter": self.power_adapter,
            "keyboard": self.keyboard,
            "mouse": self.mouse,
            "warranty": self.warranty.to_dict(),
            "photos": list(self.photos),
            "other_accessories": self.other_accessories,
            "additional_details": list(self.additional_details),
            "lock_code": self.lock_code,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> DeviceKyc:
        warranty_raw = payload.get("warranty")
        return cls(
            power_adapter=bool(payload.get("power_adapter", False)),
            keyboard=bool(payload.get("keyboard", False)),
            mouse=bool(payload.get("mouse", False)),
            warranty=Warranty.from_dict(warranty_raw) if isinstance(warranty_raw, Mapping) else Warranty(),
            photos=normalise_photos(payload.get("photos")),
            other_accessories=str(payload.get("other_accessories") or ""),
            additional_details=[str(item) for item in payload.get("additional_details") or []],
            lock_code=str(payload.get("lock_code") or ""),
        )


@dataclass(slots=True)
class OrderRecord:
    """A single repair order, the unit of synchronisation."""

    id: str
    receiver: Receiver
    order_details: OrderDetails
    estimate: Estimate
    customer: Customer | None = None
    repair_partner: RepairPartner = field(default_factory=RepairPartner)
    device_kyc: DeviceKyc = field(default_factory=DeviceKyc)

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted form; optional values are explicit ``None``."""

        return {
            "id": self.id,
            "receiver": self.receiver.to_dict(),
            "customer": self.customer.to_dict() if self.customer else None,
            "order_details": self.order_details.to_dict(),
            "estimate": self.estimate.to_dict(),
            "repair_partner": self.repair_partner.to_dict(),
            "device_kyc": self.device_kyc.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> OrderRecord:
        customer_raw = payload.get("customer")
        partner_raw = payload.get("repair_partner")
        kyc_raw = payload.get("device_kyc")
        return cls(
            id=str(payload["id"]),
            receiver=Receiver.from_dict(payload["receiver"]),
            customer=Customer.from_dict(customer_raw) if isinstance(customer_raw, Mapping) else None,
            order_details=OrderDetails.from_dict(payload["order_details"]),
            estimate=Estimate.from_dict(payload["estimate"]),
            repair_partner=RepairPartner.from_dict(partner_raw) if isinstance(partner_raw, Mapping) else RepairPartner(),
            device_kyc=DeviceKyc.from_dict(kyc_raw) if isinstance(kyc_raw, Mapping) else DeviceKyc(),
        )

    @property
    def status(self) -> OrderStatus:
        return self.order_details.status


__all__ = [
    "Customer",
    "DeviceKyc",
    "Estimate",
    "ORDER_STATUSES",
    "OrderDetails",
    "OrderRecord",
    "OrderStatus",
    "REPAIR_STATIONS",
    "Receiver",
    "RepairPartner",
    "RepairStation",
    "Warranty",
    "format_timestamp",
    "normalise_photos",
    "parse_timestamp",
]
