from __future__ import annotations

import logging
from typing import Optional

from framebus.contracts import catalog
from framebus.contracts.payloads import CheckoutData, NoPayload, OrderCreated, UpdateOrderStatus
from framebus.core.errors import BusError
from framebus.core.models import Reply, RequestId
from framebus.orders.lifecycle import OrderLifecycle
from framebus.orders.model import Order
from framebus.store.base import ID_FIELD, EntityStore
from framebus.users.email import EmailSender

logger = logging.getLogger(__name__)

STATUS_UPDATED_MESSAGE = "Order status updated successfully"


def confirmation_email_body(order: Order) -> str:
    lines = [f"Thank you for your order #{order.order_id}!", "", "Items:"]
    for item in order.items:
        if isinstance(item, dict):
            name = item.get("name", "item")
            qty = item.get("quantity", 1)
            price = item.get("price")
            lines.append(f"  {qty} x {name}" + (f" @ {price}" if price is not None else ""))
        else:
            lines.append(f"  {item}")
    shipping = "Free" if not order.shipping else f"{order.shipping:.2f}"
    lines += [
        "",
        f"Subtotal: {order.subtotal:.2f}",
        f"Shipping: {shipping}",
        f"Tax: {order.tax:.2f}",
        f"Total: {order.total:.2f}",
    ]
    return "\n".join(lines)


class OrderHandlers:
    def __init__(
        self,
        store: EntityStore,
        lifecycle: OrderLifecycle,
        *,
        confirmations: Optional[EmailSender] = None,
    ) -> None:
        self._store = store
        self._lifecycle = lifecycle
        self._confirmations = confirmations

    async def order_created(self, payload: OrderCreated, request_id: Optional[RequestId]) -> Reply:
        order = Order(
            order_id="",
            email=payload.email,
            items=payload.items,
            subtotal=payload.subtotal,
            tax=payload.tax,
            total=payload.total,
            shipping=payload.shipping,
        )
        try:
            saved = await self._store.insert(catalog.ORDERS_COLLECTION, order.to_entity())
        except Exception as e:
            logger.exception("order insert failed")
            raise BusError("Failed to create order") from e

        order.order_id = str(saved[ID_FIELD])
        logger.info(f"order created: order_id={order.order_id} email={order.email} total={order.total}")
        await self._send_confirmation(order)
        return Reply(catalog.ORDER_CREATED_RESPONSE, {"success": True, "orderId": order.order_id})

    async def _send_confirmation(self, order: Order) -> None:
        if self._confirmations is None:
            return
        try:
            await self._confirmations.send(
                order.email,
                f"Order Confirmation - {order.order_id}",
                confirmation_email_body(order),
            )
        except Exception:
            # The order is saved; a lost confirmation must not fail the request.
            logger.exception(f"confirmation email for order {order.order_id} failed")

    async def checkout(self, payload: CheckoutData, request_id: Optional[RequestId]) -> Reply:
        logger.info(f"checkout data received: {type(payload.payload).__name__}")
        return Reply(catalog.CHECKOUT_RESPONSE, {"success": True, "message": "Checkout data received"})

    async def fetch_orders(self, payload: NoPayload, request_id: Optional[RequestId]) -> Reply:
        try:
            rows = await self._store.query(catalog.ORDERS_COLLECTION).order_by("createdAt").find()
        except Exception as e:
            logger.exception("fetching orders failed")
            raise BusError("Failed to fetch orders") from e
        orders = [Order.from_entity(r).to_listing() for r in rows]
        logger.info(f"sending {len(orders)} orders to frame")
        return Reply(catalog.FETCH_ORDERS_RESPONSE, {"orders": orders})

    async def update_order_status(self, payload: UpdateOrderStatus, request_id: Optional[RequestId]) -> Reply:
        change = await self._lifecycle.change_status(payload.order_id, payload.new_status)
        return Reply(
            catalog.UPDATE_ORDER_STATUS,
            {
                "orderId": change.order_id,
                "newStatus": change.status.value,
                "success": True,
                "message": STATUS_UPDATED_MESSAGE,
                "timestamp": change.updated_at,
            },
        )
