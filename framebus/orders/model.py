from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from framebus.store.base import ID_FIELD, Entity


class OrderStatus(str, Enum):
    """Order lifecycle states. Membership is enforced, adjacency is not."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Order:
    order_id: str
    email: str
    items: list[Any]
    subtotal: float
    tax: float
    total: float
    shipping: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    created_at: str = field(default_factory=now_iso)
    updated_at: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None

    def to_entity(self) -> Entity:
        """Store shape (camelCase, as the frame reads it back)."""
        d: Entity = {
            "email": self.email,
            "items": self.items,
            "shipping": self.shipping,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at or self.created_at,
        }
        if self.order_id:
            d[ID_FIELD] = self.order_id
        return d

    @classmethod
    def from_entity(cls, e: Entity) -> "Order":
        raw_status = e.get("status") or OrderStatus.PENDING.value
        try:
            status = OrderStatus(raw_status)
        except ValueError:
            # Legacy rows (e.g. "paid") are listed as pending.
            status = OrderStatus.PENDING
        return cls(
            order_id=str(e.get(ID_FIELD, "")),
            email=e.get("email", ""),
            items=list(e.get("items") or []),
            subtotal=e.get("subtotal", 0),
            tax=e.get("tax", 0),
            total=e.get("total", 0),
            shipping=e.get("shipping", 0),
            status=status,
            created_at=e.get("createdAt", ""),
            updated_at=e.get("updatedAt"),
            notes=e.get("notes"),
            tracking_number=e.get("trackingNumber"),
        )

    def to_listing(self) -> dict[str, Any]:
        """Row of a FETCH_ORDERS_RESPONSE."""
        d: dict[str, Any] = {
            "id": self.order_id,
            "orderId": self.order_id,
            "customerEmail": self.email,
            "orderDate": self.created_at,
            "status": self.status.value,
            "total": self.total,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "items": self.items,
            "lastUpdated": self.updated_at,
        }
        if self.notes is not None:
            d["notes"] = self.notes
        if self.tracking_number is not None:
            d["trackingNumber"] = self.tracking_number
        return d
