"""ADMIN_ACTION sub-router.

The top-level router hands every ADMIN_ACTION here; `action` selects one of
the registered sub-handlers. An unknown action is a protocol error (ERROR
envelope). Failures inside a known action are answered in-band as
`ADMIN_ACTION_RESPONSE {action, success: false, error}`.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from framebus.contracts import catalog
from framebus.contracts.payloads import AdminAction, AdminPayload, SendEmail, UpdateOrder, ViewUser
from framebus.contracts.validation import parse_admin_payload
from framebus.core.errors import BusError, NotFoundError, ProtocolError, StoreError
from framebus.core.models import Reply, RequestId
from framebus.orders.lifecycle import OrderLifecycle
from framebus.store.base import EntityStore
from framebus.users.email import EmailSender
from framebus.users.model import User

logger = logging.getLogger(__name__)

AdminHandler = Callable[[Any], Awaitable[dict[str, Any]]]

UNKNOWN_ADMIN_ACTION = "Unknown admin action"


class AdminRouter:
    def __init__(self) -> None:
        self._handlers: dict[str, AdminHandler] = {}

    def register_action(self, action: str, handler: AdminHandler) -> None:
        self._handlers[action] = handler

    async def __call__(self, payload: AdminAction, request_id: Optional[RequestId]) -> Reply:
        handler = self._handlers.get(payload.action)
        if handler is None:
            logger.warning(f"unknown admin action {payload.action!r} id={request_id!r}")
            raise ProtocolError(UNKNOWN_ADMIN_ACTION)

        try:
            typed: AdminPayload = parse_admin_payload(payload.action, payload.data)
            result = await handler(typed)
        except BusError as e:
            logger.info(f"admin {payload.action} id={request_id!r} failed: {e}")
            return Reply(
                catalog.ADMIN_ACTION_RESPONSE,
                {"action": payload.action, "success": False, "error": str(e)},
            )

        data: dict[str, Any] = {"action": payload.action, "success": True}
        data.update(result)
        return Reply(catalog.ADMIN_ACTION_RESPONSE, data)


class AdminActions:
    def __init__(self, store: EntityStore, lifecycle: OrderLifecycle, email: EmailSender) -> None:
        self._store = store
        self._lifecycle = lifecycle
        self._email = email

    async def update_order(self, payload: UpdateOrder) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if payload.notes is not None:
            extra["notes"] = payload.notes
        if payload.tracking_number is not None:
            extra["trackingNumber"] = payload.tracking_number
        change = await self._lifecycle.change_status(payload.order_id, payload.status, extra=extra)
        return {"orderId": change.order_id, "status": change.status.value}

    async def view_user(self, payload: ViewUser) -> dict[str, Any]:
        try:
            entity = await self._store.get(catalog.USERS_COLLECTION, payload.user_id)
        except Exception as e:
            raise StoreError(f"Failed to look up user {payload.user_id}: {e}") from e
        if not entity:
            raise NotFoundError(f"User not found: {payload.user_id}")
        return {"user": User.from_entity(entity).to_listing()}

    async def send_email(self, payload: SendEmail) -> dict[str, Any]:
        try:
            await self._email.send(payload.to, payload.subject, payload.body)
        except Exception as e:
            raise BusError(f"Failed to send email: {e}") from e
        return {"email": payload.to}


def build_admin_router(actions: AdminActions) -> AdminRouter:
    router = AdminRouter()
    router.register_action(catalog.ADMIN_UPDATE_ORDER, actions.update_order)
    router.register_action(catalog.ADMIN_VIEW_USER, actions.view_user)
    router.register_action(catalog.ADMIN_SEND_EMAIL, actions.send_email)
    return router
