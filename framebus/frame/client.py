"""Frame side of the bus.

Posts are fire-and-forget; the client pairs each request with its reply by
correlation id and resolves an awaitable. Envelopes without an id are
unsolicited host pushes and go to the push callbacks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from framebus.contracts import catalog
from framebus.contracts.validation import envelope_from_wire
from framebus.core.channel import ChannelAdapter
from framebus.core.errors import BusError, ProtocolError
from framebus.core.ids import new_request_id
from framebus.core.models import Envelope, RequestId

logger = logging.getLogger(__name__)

PushCallback = Callable[[Envelope], None]


class RemoteError(BusError):
    """The host answered with an ERROR envelope."""


class FrameClient:
    def __init__(self, channel: ChannelAdapter) -> None:
        self._channel = channel
        self._pending: dict[RequestId, asyncio.Future] = {}
        self._push_callbacks: list[PushCallback] = []
        channel.on_receive(self._on_message)

    @property
    def outstanding(self) -> int:
        return len(self._pending)

    def on_push(self, callback: PushCallback) -> None:
        self._push_callbacks.append(callback)

    def announce_ready(self, **details: Any) -> None:
        self._channel.send(Envelope(type=catalog.IFRAME_READY, data=details))

    def post(self, kind: str, data: Optional[dict[str, Any]] = None) -> None:
        """Send without an id. The host will not answer."""
        self._channel.send(Envelope(type=kind, data=data or {}))

    async def request(
        self,
        kind: str,
        data: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Envelope:
        """Send a request and wait for the envelope carrying the same id."""

        rid = new_request_id()
        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[rid] = fut
        try:
            self._channel.send(Envelope(type=kind, data=data or {}, id=rid))
            if timeout is None:
                return await fut
            return await asyncio.wait_for(fut, timeout)
        finally:
            self._pending.pop(rid, None)

    async def call(self, kind: str, data: Optional[dict[str, Any]] = None, *, timeout: Optional[float] = None) -> dict[str, Any]:
        """Like `request`, but returns the reply data and raises RemoteError on ERROR."""
        reply = await self.request(kind, data, timeout=timeout)
        if reply.type == catalog.ERROR:
            raise RemoteError(reply.data.get("error", "unknown error"))
        return reply.data

    def _on_message(self, raw: Any) -> None:
        try:
            envelope = envelope_from_wire(raw)
        except ProtocolError:
            logger.warning(f"frame dropped malformed message: {raw!r}")
            return

        if envelope.id is None:
            for cb in self._push_callbacks:
                cb(envelope)
            return

        fut = self._pending.get(envelope.id)
        if fut is None or fut.done():
            logger.warning(f"no outstanding request for {envelope.type} id={envelope.id!r}")
            return
        fut.set_result(envelope)
