from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from framebus.contracts import catalog
from framebus.contracts.payloads import ReadySignal
from framebus.contracts.validation import envelope_from_wire, read_request_id
from framebus.core.channel import ChannelAdapter
from framebus.core.emitter import ResponseEmitter
from framebus.core.errors import ProtocolError
from framebus.core.models import RequestId
from framebus.core.readiness import ReadinessGate
from framebus.core.router import DispatchRouter
from framebus.handlers.admin import AdminActions, build_admin_router
from framebus.handlers.orders import OrderHandlers
from framebus.handlers.users import UserHandlers
from framebus.orders.lifecycle import OrderLifecycle
from framebus.store.base import EntityStore
from framebus.users.email import EmailSender, LoggingEmailSender
from framebus.users.model import StaticUserSession, UserSession

logger = logging.getLogger(__name__)


class HostBus:
    """Host side of one host/frame pairing.

    Owns its readiness latch and pending queue; build one per frame.
    Each inbound envelope is routed in its own task so a handler waiting on
    the store never holds up the next envelope.
    """

    def __init__(
        self,
        channel: ChannelAdapter,
        *,
        store: EntityStore,
        session: Optional[UserSession] = None,
        email: Optional[EmailSender] = None,
    ) -> None:
        self.channel = channel
        self.gate = ReadinessGate(channel)
        self.emitter = ResponseEmitter(self.gate)
        self.router = DispatchRouter(self.emitter)
        self.email = email or LoggingEmailSender()
        self._tasks: set[asyncio.Task] = set()

        lifecycle = OrderLifecycle(store)
        orders = OrderHandlers(store, lifecycle, confirmations=self.email)
        users = UserHandlers(store, session or StaticUserSession())
        admin = build_admin_router(AdminActions(store, lifecycle, self.email))

        r = self.router
        r.register_handler(catalog.IFRAME_READY, self._on_ready)
        r.register_handler(catalog.USER_DATA_REQUEST, users.user_data)
        r.register_handler(catalog.ORDER_CREATED, orders.order_created)
        r.register_handler(catalog.CHECKOUT_DATA, orders.checkout)
        r.register_handler(catalog.FETCH_ORDERS, orders.fetch_orders)
        r.register_handler(catalog.FETCH_USERS, users.fetch_users)
        r.register_handler(catalog.UPDATE_ORDER_STATUS, orders.update_order_status)
        r.register_handler(catalog.ADMIN_ACTION, admin)

        channel.on_receive(self.receive)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _on_ready(self, payload: ReadySignal, request_id: Optional[RequestId]) -> None:
        logger.info(f"frame announced ready: {payload.details}")
        self.gate.open()
        return None

    def receive(self, raw: Any) -> None:
        try:
            envelope = envelope_from_wire(raw)
        except ProtocolError as e:
            rid = read_request_id(raw)
            logger.warning(f"malformed inbound message id={rid!r}: {raw!r}")
            if rid is not None:
                self.emitter.fail(rid, str(e))
            return

        logger.debug(f"received {envelope.type} id={envelope.id!r}")
        task = asyncio.get_running_loop().create_task(self.router.route(envelope))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def push(self, data: dict[str, Any]) -> None:
        """Send unsolicited data to the frame (held until it is ready)."""
        self.emitter.push(data)

    async def drain(self) -> None:
        """Wait until every routed envelope has been answered."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
