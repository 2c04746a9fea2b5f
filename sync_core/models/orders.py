# =============================================================================
# sync_core/models/orders.py
# Order Records and Restaurant Owner Snapshots
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from sync_core.errors.exceptions import DecodeError
from sync_core.models.base import (
    ensure_row,
    format_timestamp,
    optional_bool,
    parse_timestamp,
    require,
)


class OrderStatus(Enum):
    """Order lifecycle: pending -> in_progress -> {completed, cancelled}."""
    PENDING = "pending"
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _ORDER_TRANSITIONS[self]


_ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PROGRESS}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderType(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def _enum(enum_cls, value: Any, record_type: str, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise DecodeError(f"Unknown {field} {value!r}", record_type, field)


@dataclass(frozen=True)
class OrderRecord:
    """A customer order as stored in the `orders` table."""
    id: str
    customer_id: str
    restaurant_id: str
    delivery_address: str
    status: OrderStatus
    order_type: OrderType
    driver_id: Optional[str] = None
    estimated_time_minutes: Optional[int] = None
    delivery_fee: Optional[float] = None
    is_picked_up: Optional[bool] = None
    is_delivered: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status is OrderStatus.COMPLETED or self.is_delivered is True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> OrderRecord:
        kind = "OrderRecord"
        ensure_row(row, kind)
        driver_id = row.get("driver_id")
        eta = row.get("estimated_time_minutes")
        fee = row.get("delivery_fee")
        try:
            eta = int(eta) if eta is not None else None
            fee = float(fee) if fee is not None else None
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid numeric field: {e}", kind)

        return cls(
            id=str(require(row, "id", kind)),
            customer_id=str(require(row, "customer_id", kind)),
            restaurant_id=str(require(row, "restaurant_id", kind)),
            delivery_address=str(row.get("delivery_address") or ""),
            status=_enum(OrderStatus, require(row, "status", kind), kind, "status"),
            order_type=_enum(OrderType, require(row, "order_type", kind), kind, "order_type"),
            driver_id=str(driver_id) if driver_id is not None else None,
            estimated_time_minutes=eta,
            delivery_fee=fee,
            is_picked_up=optional_bool(row.get("is_picked_up")),
            is_delivered=optional_bool(row.get("is_delivered")),
            created_at=parse_timestamp(row.get("created_at"), kind, "created_at"),
            updated_at=parse_timestamp(row.get("updated_at"), kind, "updated_at"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "restaurant_id": self.restaurant_id,
            "driver_id": self.driver_id,
            "delivery_address": self.delivery_address,
            "status": self.status.value,
            "order_type": self.order_type.value,
            "estimated_time_minutes": self.estimated_time_minutes,
            "delivery_fee": self.delivery_fee,
            "is_picked_up": self.is_picked_up,
            "is_delivered": self.is_delivered,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass(frozen=True)
class RestaurantSnapshot:
    """Denormalized restaurant + owner profile used to enrich orders."""
    id: str
    user_id: str
    user_name: str
    user_email: str
    restaurant_id: str
    restaurant_name: str
    address: str
    snapshot_created_at: Optional[datetime] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> RestaurantSnapshot:
        kind = "RestaurantSnapshot"
        ensure_row(row, kind)
        return cls(
            id=str(require(row, "id", kind)),
            user_id=str(require(row, "user_id", kind)),
            user_name=str(row.get("user_name") or ""),
            user_email=str(row.get("user_email") or ""),
            restaurant_id=str(require(row, "restaurant_id", kind)),
            restaurant_name=str(row.get("restaurant_name") or ""),
            address=str(row.get("address") or ""),
            snapshot_created_at=parse_timestamp(row.get("snapshot_created_at"), kind, "snapshot_created_at"),
            description=row.get("description"),
            image_url=row.get("image_url"),
            phone=row.get("phone"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "restaurant_id": self.restaurant_id,
            "restaurant_name": self.restaurant_name,
            "address": self.address,
            "snapshot_created_at": format_timestamp(self.snapshot_created_at),
            "description": self.description,
            "image_url": self.image_url,
            "phone": self.phone,
        }
