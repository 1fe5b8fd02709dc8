from __future__ import annotations

from collections import Counter

import pytest

from conftest import RecordingStore, settle

from framebus.contracts import catalog
from framebus.host.bus import HostBus
from framebus.users.email import LoggingEmailSender
from framebus.users.model import SessionUser, StaticUserSession


class BrokenSession:
    async def current_user(self):
        raise ConnectionError("members API down")


def _bus(channel, store, **kw) -> HostBus:
    bus = HostBus(channel, store=store, **kw)
    bus.gate.open()
    return bus


@pytest.mark.asyncio
async def test_user_data_when_logged_out(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "USER_DATA_REQUEST", "data": {}, "id": "u-1"})
    await settle(bus)
    assert channel.wire() == [{"type": "USER_DATA_RESPONSE", "data": {"user": None}, "id": "u-1"}]


@pytest.mark.asyncio
async def test_user_data_when_logged_in(channel, store) -> None:
    session = StaticUserSession(SessionUser(user_id="u1", email="ana@example.com"))
    bus = _bus(channel, store, session=session)
    bus.receive({"type": "USER_DATA_REQUEST", "id": "u-2"})
    await settle(bus)
    assert channel.sent[0].data == {"user": {"id": "u1", "email": "ana@example.com", "isLoggedIn": True}}


@pytest.mark.asyncio
async def test_user_data_session_failure(channel, store) -> None:
    bus = _bus(channel, store, session=BrokenSession())
    bus.receive({"type": "USER_DATA_REQUEST", "id": "u-3"})
    await settle(bus)
    assert channel.wire() == [{"type": "ERROR", "data": {"error": "Failed to fetch user data"}, "id": "u-3"}]


@pytest.mark.asyncio
async def test_order_created_persists_pending_order_and_confirms(channel) -> None:
    store = RecordingStore()
    email = LoggingEmailSender()
    bus = _bus(channel, store, email=email)
    bus.receive(
        {
            "type": "ORDER_CREATED",
            "data": {
                "email": "ana@example.com",
                "items": [{"name": "Mousepad", "price": 39.9, "quantity": 2}],
                "subtotal": 79.8,
                "tax": 6.38,
                "total": 86.18,
            },
            "id": "c-1",
        }
    )
    await settle(bus)

    [reply] = channel.sent
    assert reply.type == catalog.ORDER_CREATED_RESPONSE
    assert reply.data["success"] is True
    order_id = reply.data["orderId"]

    saved = await store.get("Orders", order_id)
    assert saved["status"] == "pending"
    assert saved["shipping"] == 0.0
    assert saved["total"] == 86.18
    assert saved["createdAt"]

    [mail] = email.outbox
    assert mail.to == "ana@example.com"
    assert mail.subject == f"Order Confirmation - {order_id}"
    assert "2 x Mousepad" in mail.body


@pytest.mark.asyncio
async def test_order_created_insert_failure(channel) -> None:
    bus = _bus(channel, RecordingStore(fail_on=("insert",)))
    bus.receive(
        {
            "type": "ORDER_CREATED",
            "data": {"email": "a@b.c", "items": [], "subtotal": 1, "tax": 0, "total": 1, "shipping": 0},
            "id": "c-2",
        }
    )
    await settle(bus)
    assert channel.wire() == [{"type": "ERROR", "data": {"error": "Failed to create order"}, "id": "c-2"}]


@pytest.mark.asyncio
async def test_checkout_data_is_acknowledged(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "CHECKOUT_DATA", "data": {"cart": [1, 2]}, "id": "k-1"})
    await settle(bus)
    assert channel.wire() == [
        {"type": "CHECKOUT_RESPONSE", "data": {"success": True, "message": "Checkout data received"}, "id": "k-1"}
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [[{"sku": 1}], "cart-token", 42, None])
async def test_checkout_data_accepts_any_payload(channel, store, data) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "CHECKOUT_DATA", "data": data, "id": "c1"})
    await settle(bus)
    assert channel.wire() == [
        {"type": "CHECKOUT_RESPONSE", "data": {"success": True, "message": "Checkout data received"}, "id": "c1"}
    ]


@pytest.mark.asyncio
async def test_fetch_orders_lists_oldest_first(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "FETCH_ORDERS", "data": {}, "id": "f-1"})
    await settle(bus)

    [reply] = channel.sent
    assert reply.type == catalog.FETCH_ORDERS_RESPONSE
    orders = reply.data["orders"]
    assert [o["orderId"] for o in orders] == ["o0", "o1"]
    # Legacy status values are listed as pending.
    assert orders[0]["status"] == "pending"
    assert orders[1] == {
        "id": "o1",
        "orderId": "o1",
        "customerEmail": "ana@example.com",
        "orderDate": "2026-01-02T00:00:00+00:00",
        "status": "pending",
        "total": 43.09,
        "subtotal": 39.9,
        "tax": 3.19,
        "shipping": 0,
        "items": [{"name": "Mousepad", "price": 39.9, "quantity": 1}],
        "lastUpdated": "2026-01-02T00:00:00+00:00",
    }


@pytest.mark.asyncio
async def test_fetch_orders_store_failure(channel, order_seed) -> None:
    bus = _bus(channel, RecordingStore(order_seed, fail_on=("find",)))
    bus.receive({"type": "FETCH_ORDERS", "id": "f-2"})
    await settle(bus)
    assert channel.wire() == [{"type": "ERROR", "data": {"error": "Failed to fetch orders"}, "id": "f-2"}]


@pytest.mark.asyncio
async def test_fetch_users_lists_oldest_first(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "FETCH_USERS", "data": {}, "id": "f-3"})
    await settle(bus)

    users = channel.sent[0].data["users"]
    assert [u["id"] for u in users] == ["u1", "u2"]
    assert users[1]["isActive"] is False
    assert users[0]["firstName"] == "Ana"


@pytest.mark.asyncio
async def test_malformed_messages(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive("not an envelope")
    bus.receive({"data": {}})
    bus.receive({"type": "FETCH_ORDERS", "data": [1, 2], "id": "m-1"})
    await settle(bus)
    assert channel.wire() == [{"type": "ERROR", "data": {"error": "Malformed message"}, "id": "m-1"}]


@pytest.mark.asyncio
async def test_every_request_gets_exactly_one_reply(channel, store) -> None:
    bus = _bus(channel, store, session=BrokenSession())
    requests = [
        {"type": "FETCH_ORDERS", "id": "e-1"},
        {"type": "NOT_A_REAL_TYPE", "id": "e-2"},
        {"type": "UPDATE_ORDER_STATUS", "data": {"orderId": "missing", "newStatus": "shipped"}, "id": "e-3"},
        {"type": "UPDATE_ORDER_STATUS", "data": {"orderId": "o1"}, "id": "e-4"},
        {"type": "USER_DATA_REQUEST", "id": "e-5"},
        {"type": "ADMIN_ACTION", "data": {"action": "NOPE"}, "id": "e-6"},
        {"type": "ADMIN_ACTION", "data": {"action": "VIEW_USER", "data": {"userId": "u1"}}, "id": "e-7"},
        {"type": "CHECKOUT_DATA", "data": {}, "id": "e-8"},
        {"type": "IFRAME_READY", "data": {}},
    ]
    for r in requests:
        bus.receive(r)
    await settle(bus)

    counts = Counter(e.id for e in channel.sent)
    assert counts == Counter({f"e-{i}": 1 for i in range(1, 9)})


@pytest.mark.asyncio
async def test_requests_reusing_an_id_are_each_answered(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "FETCH_ORDERS", "data": {}, "id": "1718000000000"})
    await settle(bus)
    bus.receive({"type": "FETCH_USERS", "data": {}, "id": "1718000000000"})
    await settle(bus)
    assert [(e.type, e.id) for e in channel.sent] == [
        ("FETCH_ORDERS_RESPONSE", "1718000000000"),
        ("FETCH_USERS_RESPONSE", "1718000000000"),
    ]


@pytest.mark.asyncio
async def test_numeric_ids_of_any_kind_are_answered(channel, store) -> None:
    bus = _bus(channel, store)
    bus.receive({"type": "FETCH_ORDERS", "data": {}, "id": 1.5})
    await settle(bus)
    bus.receive({"type": "FETCH_ORDERS", "data": [], "id": 2.5})
    await settle(bus)
    assert [(e.type, e.id) for e in channel.sent] == [
        ("FETCH_ORDERS_RESPONSE", 1.5),
        ("ERROR", 2.5),
    ]
    assert channel.sent[1].data == {"error": "Malformed message"}
