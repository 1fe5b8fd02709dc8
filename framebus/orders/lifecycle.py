"""Order status lifecycle.

A status change is checked in a fixed order and stops at the first failure:

1. required fields present (done when the payload is narrowed)
2. the new status is a member of OrderStatus
3. the order exists (a store failure is reported apart from "not found")
4. the update is written with a fresh last-updated timestamp

Any status may follow any other, including itself. Only membership is
enforced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from framebus.contracts.catalog import ORDERS_COLLECTION
from framebus.core.errors import NotFoundError, StoreError, ValidationError
from framebus.store.base import EntityStore

from .model import OrderStatus, now_iso

logger = logging.getLogger(__name__)

VALID_STATUSES = OrderStatus.values()
INVALID_STATUS_MESSAGE = "Invalid status value. Must be one of: " + ", ".join(VALID_STATUSES)


def validate_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(INVALID_STATUS_MESSAGE) from None


@dataclass(frozen=True)
class StatusChange:
    order_id: str
    previous: Optional[str]
    status: OrderStatus
    updated_at: str


class OrderLifecycle:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def change_status(
        self,
        order_id: str,
        new_status: str,
        *,
        extra: Optional[dict[str, Any]] = None,
    ) -> StatusChange:
        status = validate_status(new_status)

        try:
            existing = await self._store.get(ORDERS_COLLECTION, order_id)
        except Exception as e:
            raise StoreError(f"Failed to look up order {order_id}: {e}") from e
        if not existing:
            raise NotFoundError(f"Order not found: {order_id}")

        updated_at = now_iso()
        partial: dict[str, Any] = dict(extra or {})
        partial.update({"status": status.value, "updatedAt": updated_at})
        try:
            await self._store.update(ORDERS_COLLECTION, order_id, partial)
        except Exception as e:
            raise StoreError(f"Failed to update order status: {e}") from e

        previous = existing.get("status")
        logger.info(f"order {order_id}: {previous} -> {status.value}")
        return StatusChange(order_id=order_id, previous=previous, status=status, updated_at=updated_at)
