from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest

from framebus.core.errors import StoreError
from framebus.core.models import Envelope
from framebus.store.memory import InMemoryEntityStore


class RecordingChannel:
    """Channel end that keeps what it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[Envelope] = []
        self.receiver: Optional[Callable[[Any], None]] = None

    def send(self, envelope: Envelope) -> None:
        self.sent.append(envelope)

    def on_receive(self, callback: Callable[[Any], None]) -> None:
        self.receiver = callback

    def wire(self) -> list[dict[str, Any]]:
        return [e.to_wire() for e in self.sent]


class RecordingStore(InMemoryEntityStore):
    """In-memory store that logs every operation as (op, collection, *args)."""

    def __init__(self, seed=None, *, fail_on: tuple[str, ...] = ()) -> None:
        super().__init__(seed)
        self.calls: list[tuple] = []
        self.fail_on = fail_on

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise StoreError("connection reset")

    async def get(self, collection, entity_id):
        self.calls.append(("get", collection, entity_id))
        self._check("get")
        return await super().get(collection, entity_id)

    async def _find(self, collection, order_field, descending):
        self.calls.append(("find", collection, order_field))
        self._check("find")
        return await super()._find(collection, order_field, descending)

    async def insert(self, collection, record):
        self.calls.append(("insert", collection, record))
        self._check("insert")
        return await super().insert(collection, record)

    async def update(self, collection, entity_id, partial):
        self.calls.append(("update", collection, entity_id, partial))
        self._check("update")
        return await super().update(collection, entity_id, partial)

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]


async def settle(bus) -> None:
    """Let scheduled deliveries run, then wait for every routed envelope."""
    for _ in range(5):
        await asyncio.sleep(0)
    await bus.drain()
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def order_seed() -> dict:
    return {
        "Orders": [
            {
                "_id": "o1",
                "email": "ana@example.com",
                "items": [{"name": "Mousepad", "price": 39.9, "quantity": 1}],
                "subtotal": 39.9,
                "tax": 3.19,
                "shipping": 0,
                "total": 43.09,
                "status": "pending",
                "createdAt": "2026-01-02T00:00:00+00:00",
                "updatedAt": "2026-01-02T00:00:00+00:00",
            },
            {
                "_id": "o0",
                "email": "ben@example.com",
                "items": [],
                "subtotal": 10,
                "tax": 1,
                "shipping": 5,
                "total": 16,
                "status": "paid",
                "createdAt": "2026-01-01T00:00:00+00:00",
            },
        ],
        "Users": [
            {
                "_id": "u2",
                "email": "zoe@example.com",
                "firstName": "Zoe",
                "lastName": "Park",
                "createdDate": "2025-06-01T00:00:00+00:00",
                "lastLoginDate": "2026-01-01T00:00:00+00:00",
                "isActive": False,
            },
            {
                "_id": "u1",
                "email": "ana@example.com",
                "firstName": "Ana",
                "lastName": "Lopez",
                "createdDate": "2025-01-01T00:00:00+00:00",
                "lastLoginDate": "2026-01-02T00:00:00+00:00",
                "isActive": True,
            },
        ],
    }


@pytest.fixture
def store(order_seed) -> RecordingStore:
    return RecordingStore(order_seed)
