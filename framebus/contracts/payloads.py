"""Typed request payloads, one variant per command type.

The router narrows `envelope.data` into one of these before a handler runs,
so handlers never read raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class ReadySignal:
    # The frame may describe itself (e.g. {"adminPanel": true, "version": "1.0.0"}).
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NoPayload:
    """USER_DATA_REQUEST, FETCH_ORDERS and FETCH_USERS carry nothing."""


@dataclass(frozen=True)
class OrderCreated:
    email: str
    items: List[Any]
    subtotal: float
    tax: float
    total: float
    shipping: float = 0.0


@dataclass(frozen=True)
class CheckoutData:
    # Whatever the frame sent; never inspected.
    payload: Any = None


@dataclass(frozen=True)
class UpdateOrderStatus:
    order_id: str
    new_status: str
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class AdminAction:
    action: str
    data: Dict[str, Any]


# Admin sub-command payloads.


@dataclass(frozen=True)
class UpdateOrder:
    order_id: str
    status: str
    notes: Optional[str] = None
    tracking_number: Optional[str] = None


@dataclass(frozen=True)
class ViewUser:
    user_id: str


@dataclass(frozen=True)
class SendEmail:
    to: str
    subject: str
    body: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None


RequestPayload = Union[ReadySignal, NoPayload, OrderCreated, CheckoutData, UpdateOrderStatus, AdminAction]
AdminPayload = Union[UpdateOrder, ViewUser, SendEmail]
