"""Readiness gate.

The frame attaches its message listener at some unknown time after the host
starts. Until it announces IFRAME_READY, outbound envelopes are held in a
FIFO pending queue. The first announcement flushes the queue in insertion
order and latches the gate open for the life of the instance.
"""

from __future__ import annotations

import enum
import logging
from collections import deque

from .channel import ChannelAdapter
from .models import Envelope

logger = logging.getLogger(__name__)


class GateState(str, enum.Enum):
    NOT_READY = "NOT_READY"
    READY = "READY"


class ReadinessGate:
    def __init__(self, channel: ChannelAdapter) -> None:
        self._channel = channel
        self._state = GateState.NOT_READY
        # Always empty once READY.
        self._pending: deque[Envelope] = deque()

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is GateState.READY

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def deliver(self, envelope: Envelope) -> None:
        if self._state is GateState.READY:
            self._channel.send(envelope)
            return
        logger.debug(f"frame not ready, queued {envelope.type} id={envelope.id}")
        self._pending.append(envelope)

    def open(self) -> None:
        """Latch READY and flush the pending queue. Later calls are no-ops.

        An envelope leaves the queue only after its send returns. If a send
        raises, the gate stays NOT_READY with the unsent envelopes still
        queued, and the next ready signal resumes from the first of them.
        """

        if self._state is GateState.READY:
            logger.debug("readiness already latched, ignoring repeat signal")
            return
        logger.info(f"frame ready, flushing {len(self._pending)} pending envelope(s)")
        # Channel sends are synchronous; no deliver() can run between drain and latch.
        while self._pending:
            self._channel.send(self._pending[0])
            self._pending.popleft()
        self._state = GateState.READY
