from __future__ import annotations

# Envelope types (closed catalog).

IFRAME_READY = "IFRAME_READY"

USER_DATA_REQUEST = "USER_DATA_REQUEST"
USER_DATA_RESPONSE = "USER_DATA_RESPONSE"

ORDER_CREATED = "ORDER_CREATED"
ORDER_CREATED_RESPONSE = "ORDER_CREATED_RESPONSE"

CHECKOUT_DATA = "CHECKOUT_DATA"
CHECKOUT_RESPONSE = "CHECKOUT_RESPONSE"

FETCH_ORDERS = "FETCH_ORDERS"
FETCH_ORDERS_RESPONSE = "FETCH_ORDERS_RESPONSE"

FETCH_USERS = "FETCH_USERS"
FETCH_USERS_RESPONSE = "FETCH_USERS_RESPONSE"

# The status update reply echoes the request type.
UPDATE_ORDER_STATUS = "UPDATE_ORDER_STATUS"

ADMIN_ACTION = "ADMIN_ACTION"
ADMIN_ACTION_RESPONSE = "ADMIN_ACTION_RESPONSE"

DATA_FROM_HOST = "DATA_FROM_HOST"

ERROR = "ERROR"

# Admin sub-commands carried inside ADMIN_ACTION.

ADMIN_UPDATE_ORDER = "UPDATE_ORDER"
ADMIN_VIEW_USER = "VIEW_USER"
ADMIN_SEND_EMAIL = "SEND_EMAIL"

ADMIN_ACTIONS = frozenset({ADMIN_UPDATE_ORDER, ADMIN_VIEW_USER, ADMIN_SEND_EMAIL})

# Request type -> reply type. IFRAME_READY gets no reply.
REPLY_TYPES = {
    USER_DATA_REQUEST: USER_DATA_RESPONSE,
    ORDER_CREATED: ORDER_CREATED_RESPONSE,
    CHECKOUT_DATA: CHECKOUT_RESPONSE,
    FETCH_ORDERS: FETCH_ORDERS_RESPONSE,
    FETCH_USERS: FETCH_USERS_RESPONSE,
    UPDATE_ORDER_STATUS: UPDATE_ORDER_STATUS,
    ADMIN_ACTION: ADMIN_ACTION_RESPONSE,
}

REQUEST_TYPES = frozenset({IFRAME_READY, *REPLY_TYPES})

# Requests whose data is passed through untouched and may be any JSON value.
OPAQUE_PAYLOAD_TYPES = frozenset({CHECKOUT_DATA})

# Entity store collections.

ORDERS_COLLECTION = "Orders"
USERS_COLLECTION = "Users"


def dlq_stream(base_stream: str) -> str:
    return f"dlq.{base_stream}"
