"""Factory for new orders as captured by the intake form."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from .identity import OrderIdGenerator, generate_order_id
from .models import (
    Customer,
    DeviceKyc,
    Estimate,
    OrderDetails,
    OrderRecord,
    OrderStatus,
    Receiver,
    RepairPartner,
)
from .validation import validate_order


def _section(value: Any, factory: type) -> Any:
    if value is None or isinstance(value, factory):
        return value
    if isinstance(value, Mapping):
        return factory.from_dict(value)
    raise TypeError(f"expected {factory.__name__} or mapping, got {type(value).__name__}")


def new_order(
    receiver_name: str,
    designation: str,
    device_model: str,
    repair_cost: str,
    advance_paid: str,
    *,
    customer: Customer | Mapping[str, Any] | None = None,
    problems: Iterable[str] = (),
    pickup_date: datetime | None = None,
    pickup_time: datetime | None = None,
    repair_partner: RepairPartner | Mapping[str, Any] | None = None,
    device_kyc: DeviceKyc | Mapping[str, Any] | None = None,
    generator: OrderIdGenerator | None = None,
) -> OrderRecord:
    """Build a validated ``Pending`` order with a freshly generated id.

    Raises :class:`~repair_desk.validation.ValidationError` when any of the
    required intake fields is blank or a money amount is not a decimal.
    """

    record = OrderRecord(
        id=generator.generate() if generator else generate_order_id(),
        receiver=Receiver(name=receiver_name, designation=designation),
        customer=_section(customer, Customer),
        order_details=OrderDetails(
            device_model=device_model,
            status=OrderStatus.PENDING,
            problems=list(problems),
        ),
        estimate=Estimate(
            repair_cost=repair_cost,
            advance_paid=advance_paid,
            pickup_date=pickup_date,
            pickup_time=pickup_time,
        ),
        repair_partner=_section(repair_partner, RepairPartner) or RepairPartner(),
        device_kyc=_section(device_kyc, DeviceKyc) or DeviceKyc(),
    )
    return validate_order(record)


__all__ = ["new_order"]
