from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from framebus.contracts.catalog import DATA_FROM_HOST, ERROR

from .models import Envelope, RequestId
from .readiness import ReadinessGate

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReplyHandle:
    """The answer slot for one inbound request.

    Only the first `reply` or `fail` is sent; later attempts are dropped with a
    warning. The slot belongs to a single request, so a later request that
    reuses the same id gets its own handle and its own reply.
    """

    def __init__(self, emitter: "ResponseEmitter", request_id: RequestId) -> None:
        self._emitter = emitter
        self.request_id = request_id
        self.answered = False

    def _send(self, envelope: Envelope) -> bool:
        if self.answered:
            logger.warning(f"dropping second {envelope.type} for already answered id={self.request_id!r}")
            return False
        self.answered = True
        self._emitter.send(envelope)
        return True

    def reply(self, reply_type: str, data: dict[str, Any]) -> bool:
        return self._send(Envelope(type=reply_type, data=data, id=self.request_id))

    def fail(self, message: str) -> bool:
        return self._send(Envelope(type=ERROR, data={"error": message}, id=self.request_id))


class ResponseEmitter:
    """Builds correlated reply/error envelopes and hands them to the gate."""

    def __init__(self, gate: ReadinessGate) -> None:
        self._gate = gate

    def send(self, envelope: Envelope) -> None:
        self._gate.deliver(envelope)

    def handle(self, request_id: RequestId) -> ReplyHandle:
        return ReplyHandle(self, request_id)

    def fail(self, request_id: RequestId, message: str) -> bool:
        """One-off ERROR for a request that never reaches a handler."""
        return self.handle(request_id).fail(message)

    def push(self, data: dict[str, Any], *, push_type: str = DATA_FROM_HOST) -> None:
        """Unsolicited host -> frame envelope. Carries no id and expects no reply."""
        self._gate.deliver(Envelope(type=push_type, data=data, timestamp=_now_iso()))
