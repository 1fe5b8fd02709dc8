from __future__ import annotations

from typing import Any, Iterable

from framebus.core.errors import ProtocolError, ValidationError
from framebus.core.models import Envelope

from . import catalog
from .payloads import (
    AdminAction,
    AdminPayload,
    CheckoutData,
    NoPayload,
    OrderCreated,
    ReadySignal,
    RequestPayload,
    SendEmail,
    UpdateOrder,
    UpdateOrderStatus,
    ViewUser,
)


ENVELOPE_KEYS = {"type", "data", "id", "timestamp"}
REPLY_TYPES = set(catalog.REPLY_TYPES.values()) | {catalog.ERROR, catalog.DATA_FROM_HOST}


def _present(d: dict[str, Any], k: str) -> bool:
    v = d.get(k)
    return v is not None and v != ""


def _require_fields(d: dict[str, Any], keys: Iterable[str], message: str) -> None:
    if not all(_present(d, k) for k in keys):
        raise ValidationError(message)


def _require_str(d: dict[str, Any], k: str) -> str:
    v = d.get(k)
    if not isinstance(v, str) or not v.strip():
        raise ValidationError(f"{k} must be non-empty string")
    return v


def _optional_str(d: dict[str, Any], k: str) -> str | None:
    v = d.get(k)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValidationError(f"{k} must be string")
    return v


def _require_number(d: dict[str, Any], k: str) -> float:
    v = d.get(k)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValidationError(f"{k} must be number")
    return float(v)


def _is_request_id(v: Any) -> bool:
    return isinstance(v, (str, int, float)) and not isinstance(v, bool)


def read_request_id(raw: Any) -> Any:
    """Best-effort id extraction from a body that may be malformed."""
    if isinstance(raw, dict) and _is_request_id(raw.get("id")):
        return raw["id"]
    return None


def envelope_from_wire(raw: Any) -> Envelope:
    """Parse one inbound wire object. Unknown keys are ignored; the envelope shape is not."""

    if not isinstance(raw, dict):
        raise ProtocolError("Malformed message")
    kind = raw.get("type")
    if not isinstance(kind, str) or not kind.strip():
        raise ProtocolError("Malformed message")
    data = raw.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict) and kind not in catalog.OPAQUE_PAYLOAD_TYPES:
        raise ProtocolError("Malformed message")
    rid = raw.get("id")
    if rid is not None and not _is_request_id(rid):
        raise ProtocolError("Malformed message")
    ts = raw.get("timestamp")
    return Envelope(type=kind, data=data, id=rid, timestamp=ts if isinstance(ts, str) else None)


def parse_payload(kind: str, data: Any) -> RequestPayload:
    """Narrow a request's data into its typed payload.

    Raises ValidationError when required fields are missing or mistyped and
    ProtocolError for a type outside the request catalog.
    """

    if kind == catalog.IFRAME_READY:
        return ReadySignal(details=dict(data))

    if kind in (catalog.USER_DATA_REQUEST, catalog.FETCH_ORDERS, catalog.FETCH_USERS):
        return NoPayload()

    if kind == catalog.ORDER_CREATED:
        shipping = 0.0
        if _present(data, "shipping"):
            shipping = _require_number(data, "shipping")
        items = data.get("items")
        if not isinstance(items, list):
            raise ValidationError("items must be list")
        return OrderCreated(
            email=_require_str(data, "email"),
            items=items,
            subtotal=_require_number(data, "subtotal"),
            tax=_require_number(data, "tax"),
            total=_require_number(data, "total"),
            shipping=shipping,
        )

    if kind == catalog.CHECKOUT_DATA:
        return CheckoutData(payload=data)

    if kind == catalog.UPDATE_ORDER_STATUS:
        _require_fields(data, ("orderId", "newStatus"), "Missing orderId or newStatus")
        return UpdateOrderStatus(
            order_id=str(data["orderId"]),
            new_status=str(data["newStatus"]),
            timestamp=_optional_str(data, "timestamp"),
        )

    if kind == catalog.ADMIN_ACTION:
        action = _require_str(data, "action")
        nested = data.get("data")
        if nested is None:
            # The admin frame sends action fields flat beside `action`.
            nested = {k: v for k, v in data.items() if k != "action"}
        if not isinstance(nested, dict):
            raise ValidationError("data must be object")
        return AdminAction(action=action, data=nested)

    raise ProtocolError("Unknown message type")


def parse_admin_payload(action: str, data: dict[str, Any]) -> AdminPayload:
    if action == catalog.ADMIN_UPDATE_ORDER:
        updates = data.get("updates")
        fields = dict(updates) if isinstance(updates, dict) else {}
        fields.update({k: v for k, v in data.items() if k != "updates"})
        _require_fields(fields, ("orderId", "status"), "Missing orderId or status")
        return UpdateOrder(
            order_id=str(fields["orderId"]),
            status=str(fields["status"]),
            notes=_optional_str(fields, "notes"),
            tracking_number=_optional_str(fields, "trackingNumber"),
        )

    if action == catalog.ADMIN_VIEW_USER:
        _require_fields(data, ("userId",), "Missing userId")
        return ViewUser(user_id=str(data["userId"]))

    if action == catalog.ADMIN_SEND_EMAIL:
        _require_fields(data, ("userEmail",), "Missing userEmail")
        name = _optional_str(data, "userName")
        subject = _optional_str(data, "subject") or "A message from the store"
        body = _optional_str(data, "body") or (f"Hello {name}," if name else "Hello,")
        return SendEmail(
            to=_require_str(data, "userEmail"),
            subject=subject,
            body=body,
            user_id=str(data["userId"]) if _present(data, "userId") else None,
            user_name=name,
        )

    raise ProtocolError("Unknown admin action")


def validate_envelope_dict(event: dict[str, Any]) -> Envelope:
    """Strict validation of a stored or replayed envelope.

    - no keys outside the envelope shape
    - request types must carry a payload that narrows
    - reply types must carry the id they answer
    """

    if not isinstance(event, dict):
        raise ProtocolError("envelope must be object")
    extra = set(event) - ENVELOPE_KEYS
    if extra:
        raise ValidationError(f"extra keys not allowed: {sorted(extra)}")
    env = envelope_from_wire(event)
    if env.type in catalog.REQUEST_TYPES:
        payload = parse_payload(env.type, env.data)
        if isinstance(payload, AdminAction):
            parse_admin_payload(payload.action, payload.data)
        return env
    if env.type in REPLY_TYPES:
        if env.type != catalog.DATA_FROM_HOST and env.id is None:
            raise ValidationError(f"{env.type} must carry the id it answers")
        if env.type == catalog.ERROR:
            _require_str(env.data, "error")
        return env
    raise ProtocolError(f"unknown envelope type: {env.type}")


def validate_many(events: Iterable[dict[str, Any]]) -> None:
    for ev in events:
        validate_envelope_dict(ev)
