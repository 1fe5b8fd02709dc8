from __future__ import annotations

import uuid


def new_request_id() -> str:
    return str(uuid.uuid4())


def new_entity_id() -> str:
    return uuid.uuid4().hex
