from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from framebus.contracts.catalog import REPLY_TYPES, REQUEST_TYPES
from framebus.contracts.validation import parse_payload

from .emitter import ReplyHandle, ResponseEmitter
from .errors import BusError
from .models import Envelope, Reply, RequestId

logger = logging.getLogger(__name__)

HandlerResult = Optional[Reply]
Handler = Callable[[Any, Optional[RequestId]], Union[HandlerResult, Awaitable[HandlerResult]]]

UNKNOWN_MESSAGE_TYPE = "Unknown message type"


class DispatchRouter:
    """Maps an envelope type to its handler and sends the single terminal reply.

    Handlers return a `Reply` (or None for commands that answer nothing) and
    may be plain functions or coroutines. Anything they raise becomes an ERROR
    envelope carrying the request id.
    """

    def __init__(self, emitter: ResponseEmitter) -> None:
        self._emitter = emitter
        self._handlers: dict[str, Handler] = {}

    def register_handler(self, command_type: str, handler: Handler) -> None:
        if command_type in self._handlers:
            logger.debug(f"replacing handler for {command_type}")
        self._handlers[command_type] = handler

    def handler_for(self, command_type: str) -> Optional[Handler]:
        return self._handlers.get(command_type)

    def _fail(self, envelope: Envelope, handle: Optional[ReplyHandle], message: str) -> None:
        if handle is None:
            logger.warning(f"{envelope.type} without id failed, nothing to answer: {message}")
            return
        handle.fail(message)

    async def route(self, envelope: Envelope) -> None:
        handle = self._emitter.handle(envelope.id) if envelope.id is not None else None
        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.warning(f"unknown message type {envelope.type!r} id={envelope.id!r}")
            self._fail(envelope, handle, UNKNOWN_MESSAGE_TYPE)
            return

        try:
            if envelope.type in REQUEST_TYPES:
                payload = parse_payload(envelope.type, envelope.data)
            else:
                payload = dict(envelope.data)
            result = handler(payload, envelope.id)
            if inspect.isawaitable(result):
                result = await result
        except BusError as e:
            logger.info(f"{envelope.type} id={envelope.id!r} failed: {e}")
            self._fail(envelope, handle, str(e))
            return
        except Exception as e:
            logger.exception(f"handler for {envelope.type} id={envelope.id!r} raised")
            self._fail(envelope, handle, str(e) or e.__class__.__name__)
            return

        if result is None:
            if handle is not None and envelope.type in REPLY_TYPES:
                logger.error(f"handler for {envelope.type} returned no reply")
                self._fail(envelope, handle, f"{envelope.type} produced no reply")
            return
        if handle is None:
            logger.debug(f"{envelope.type} carried no id, reply {result.type} not sent")
            return
        handle.reply(result.type, result.data)
