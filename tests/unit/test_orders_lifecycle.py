from __future__ import annotations

import pytest

from conftest import RecordingStore, settle

from framebus.contracts import catalog
from framebus.core.errors import NotFoundError, StoreError, ValidationError
from framebus.host.bus import HostBus
from framebus.orders.lifecycle import INVALID_STATUS_MESSAGE, OrderLifecycle, validate_status
from framebus.orders.model import OrderStatus


def _ready_bus(channel, store) -> HostBus:
    bus = HostBus(channel, store=store)
    bus.gate.open()
    return bus


def _update(order_id=None, new_status=None, rid="r1") -> dict:
    data = {}
    if order_id is not None:
        data["orderId"] = order_id
    if new_status is not None:
        data["newStatus"] = new_status
    return {"type": catalog.UPDATE_ORDER_STATUS, "data": data, "id": rid}


def test_invalid_status_message_names_allowed_set() -> None:
    assert INVALID_STATUS_MESSAGE == (
        "Invalid status value. Must be one of: pending, processing, shipped, delivered, cancelled"
    )
    assert validate_status("delivered") is OrderStatus.DELIVERED
    with pytest.raises(ValidationError):
        validate_status("Delivered")


@pytest.mark.asyncio
async def test_update_order_status_scenario(channel, store) -> None:
    bus = _ready_bus(channel, store)
    bus.receive(_update("o1", "shipped"))
    await settle(bus)

    updates = [c for c in store.calls if c[0] == "update"]
    assert len(updates) == 1
    _, collection, order_id, partial = updates[0]
    assert (collection, order_id) == ("Orders", "o1")
    assert partial["status"] == "shipped"
    assert "updatedAt" in partial

    [reply] = channel.sent
    assert reply.type == catalog.UPDATE_ORDER_STATUS
    assert reply.id == "r1"
    assert reply.data["orderId"] == "o1"
    assert reply.data["newStatus"] == "shipped"
    assert reply.data["success"] is True
    assert reply.data["message"] == "Order status updated successfully"
    assert reply.data["timestamp"] == partial["updatedAt"]

    stored = await store.get("Orders", "o1")
    assert stored["status"] == "shipped"


@pytest.mark.asyncio
async def test_update_order_status_not_found(channel) -> None:
    store = RecordingStore()
    bus = _ready_bus(channel, store)
    bus.receive(_update("o1", "shipped"))
    await settle(bus)

    assert channel.wire() == [{"type": "ERROR", "data": {"error": "Order not found: o1"}, "id": "r1"}]
    assert "update" not in store.ops()


@pytest.mark.asyncio
async def test_lookup_failure_is_reported_apart_from_not_found(channel, order_seed) -> None:
    store = RecordingStore(order_seed, fail_on=("get",))
    bus = _ready_bus(channel, store)
    bus.receive(_update("o1", "shipped"))
    await settle(bus)

    assert channel.wire() == [
        {"type": "ERROR", "data": {"error": "Failed to look up order o1: connection reset"}, "id": "r1"}
    ]
    assert "update" not in store.ops()


@pytest.mark.asyncio
async def test_update_failure_is_reported(channel, order_seed) -> None:
    store = RecordingStore(order_seed, fail_on=("update",))
    bus = _ready_bus(channel, store)
    bus.receive(_update("o1", "cancelled"))
    await settle(bus)

    assert channel.wire() == [
        {"type": "ERROR", "data": {"error": "Failed to update order status: connection reset"}, "id": "r1"}
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", ["SHIPPED", "paid", "refunded", "shipped ", "null"])
async def test_invalid_status_never_touches_store(channel, store, bad: str) -> None:
    bus = _ready_bus(channel, store)
    bus.receive(_update("o1", bad))
    await settle(bus)

    assert channel.wire() == [{"type": "ERROR", "data": {"error": INVALID_STATUS_MESSAGE}, "id": "r1"}]
    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "order_id,new_status",
    [(None, "shipped"), ("o1", None), ("", "shipped"), ("o1", ""), (None, None)],
)
async def test_missing_field_fails_before_store_access(channel, store, order_id, new_status) -> None:
    bus = _ready_bus(channel, store)
    bus.receive(_update(order_id, new_status))
    await settle(bus)

    assert channel.wire() == [
        {"type": "ERROR", "data": {"error": "Missing orderId or newStatus"}, "id": "r1"}
    ]
    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "start,target",
    [("pending", "pending"), ("delivered", "pending"), ("cancelled", "shipped"), ("shipped", "processing")],
)
async def test_any_status_may_follow_any_other(start: str, target: str) -> None:
    store = RecordingStore({"Orders": [{"_id": "o1", "status": start}]})
    change = await OrderLifecycle(store).change_status("o1", target)
    assert change.previous == start
    assert change.status.value == target
    assert (await store.get("Orders", "o1"))["status"] == target


@pytest.mark.asyncio
async def test_lifecycle_raises_typed_errors() -> None:
    lifecycle = OrderLifecycle(RecordingStore(fail_on=("get",)))
    with pytest.raises(StoreError):
        await lifecycle.change_status("o1", "shipped")
    with pytest.raises(NotFoundError):
        await OrderLifecycle(RecordingStore()).change_status("o1", "shipped")
