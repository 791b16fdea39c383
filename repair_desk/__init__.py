"""Offline-first storage and sync for device repair orders."""

from .customers import CustomerBook
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
    RepairStation,
    Warranty,
)
from .orders import new_order
from .query import FilterSpec, filter_orders
from .storage import OrderStore, StorageCorruptError, StorageError, StorageWriteError
from .validation import ValidationError

__all__ = [
    "Customer",
    "CustomerBook",
    "DeviceKyc",
    "Estimate",
    "FilterSpec",
    "OrderDetails",
    "OrderIdGenerator",
    "OrderRecord",
    "OrderStatus",
    "OrderStore",
    "Receiver",
    "RepairPartner",
    "RepairStation",
    "StorageCorruptError",
    "StorageError",
    "StorageWriteError",
    "ValidationError",
    "Warranty",
    "filter_orders",
    "generate_order_id",
    "new_order",
]
