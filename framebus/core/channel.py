from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from framebus.contracts.catalog import dlq_stream

from .models import Envelope

logger = logging.getLogger(__name__)

Receiver = Callable[[Any], None]


class ChannelAdapter(Protocol):
    """One end of the host/frame link.

    `send` transmits a single envelope and never retries. `on_receive` sets the
    one callback invoked per inbound wire object, in transport order.
    """

    def send(self, envelope: Envelope) -> None:  # pragma: no cover
        ...

    def on_receive(self, callback: Receiver) -> None:  # pragma: no cover
        ...


class LoopbackChannel:
    """In-process channel end. Delivery is FIFO and scheduled on the running loop.

    Whatever reaches an end with no registered receiver is dropped, the same
    way a frame that has not attached its listener loses early posts.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.sent: list[dict[str, Any]] = []
        self._peer: Optional[LoopbackChannel] = None
        self._receiver: Optional[Receiver] = None

    def send(self, envelope: Envelope) -> None:
        if self._peer is None:
            raise RuntimeError(f"channel end {self.name!r} is not connected")
        # Serialize and parse again: the far side only ever sees an opaque copy.
        wire = json.loads(json.dumps(envelope.to_wire()))
        self.sent.append(wire)
        asyncio.get_running_loop().call_soon(self._peer._deliver, wire)

    def on_receive(self, callback: Receiver) -> None:
        self._receiver = callback

    def _deliver(self, wire: Any) -> None:
        if self._receiver is None:
            logger.debug(f"{self.name}: no receiver attached, dropped {wire.get('type') if isinstance(wire, dict) else wire!r}")
            return
        self._receiver(wire)


def create_channel_pair() -> tuple[LoopbackChannel, LoopbackChannel]:
    """Return connected (host_end, frame_end)."""
    host_end = LoopbackChannel("host")
    frame_end = LoopbackChannel("frame")
    host_end._peer = frame_end
    frame_end._peer = host_end
    return host_end, frame_end


@dataclass(frozen=True)
class ReceivedMessage:
    stream: str
    message_id: str
    fields: dict[str, str]


class RedisStreamChannel:
    """Redis Streams implementation.

    Inbound envelopes are read from `inbound_stream` through a consumer group
    and acked once handed to the receiver. Outbound envelopes are appended to
    `outbound_stream` by a single writer task, so transmission order equals
    `send` order. Bodies that do not decode to a JSON object go to the DLQ.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        inbound_stream: str,
        outbound_stream: str,
        group: str,
        consumer: str,
        block_ms: int = 5000,
        read_count: int = 10,
    ):
        self.redis_url = redis_url
        self.inbound_stream = inbound_stream
        self.outbound_stream = outbound_stream
        self.group = group
        self.consumer = consumer
        self.block_ms = block_ms
        self.read_count = read_count
        self._client = None
        self._receiver: Optional[Receiver] = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None

    def _get_client(self):
        if self._client is None:
            import redis.asyncio as aioredis  # type: ignore

            self._client = aioredis.Redis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def send(self, envelope: Envelope) -> None:
        self._outbox.put_nowait(json.dumps(envelope.to_wire(), ensure_ascii=False))

    def on_receive(self, callback: Receiver) -> None:
        self._receiver = callback

    async def _ensure_group(self) -> None:
        client = self._get_client()
        try:
            await client.xgroup_create(name=self.inbound_stream, groupname=self.group, id="$", mkstream=True)
        except Exception as e:
            # BUSYGROUP means it already exists.
            if "BUSYGROUP" not in str(e):
                raise

    async def _write_loop(self) -> None:
        client = self._get_client()
        while True:
            body = await self._outbox.get()
            try:
                await client.xadd(self.outbound_stream, {"envelope": body})
            except Exception:
                logger.exception(f"xadd to {self.outbound_stream} failed, envelope lost")
            finally:
                self._outbox.task_done()

    async def poll(self) -> list[ReceivedMessage]:
        client = self._get_client()
        resp = await client.xreadgroup(
            groupname=self.group,
            consumername=self.consumer,
            streams={self.inbound_stream: ">"},
            count=self.read_count,
            block=self.block_ms,
        )
        out: list[ReceivedMessage] = []
        for (sname, items) in resp or []:
            for (msg_id, fields) in items:
                out.append(ReceivedMessage(stream=sname, message_id=msg_id, fields=dict(fields)))
        return out

    async def ack(self, message_id: str) -> None:
        await self._get_client().xack(self.inbound_stream, self.group, message_id)

    async def _dlq(self, *, body: str, error: str, original_message_id: str) -> None:
        await self._get_client().xadd(
            dlq_stream(self.inbound_stream),
            {
                "envelope": body,
                "error": error,
                "failed_at": datetime.now(timezone.utc).isoformat(),
                "original_stream": self.inbound_stream,
                "original_message_id": original_message_id,
            },
        )

    async def run(self, *, stop_after_messages: int | None = None) -> None:
        """Pump inbound messages into the receiver until cancelled."""

        if self._receiver is None:
            raise RuntimeError("on_receive() must be called before run()")
        await self._ensure_group()
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._write_loop(), name="framebus-redis-writer")

        processed = 0
        while True:
            batch = await self.poll()
            for msg in batch:
                body = msg.fields.get("envelope") or ""
                try:
                    wire = json.loads(body)
                    if not isinstance(wire, dict):
                        raise ValueError("envelope must be a JSON object")
                except ValueError as e:
                    await self._dlq(body=body, error=f"undecodable: {e}", original_message_id=msg.message_id)
                    await self.ack(msg.message_id)
                    continue

                self._receiver(wire)
                await self.ack(msg.message_id)

                processed += 1
                if stop_after_messages is not None and processed >= stop_after_messages:
                    return

    async def close(self) -> None:
        if self._writer_task is not None:
            await self._outbox.join()
            self._writer_task.cancel()
            self._writer_task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
