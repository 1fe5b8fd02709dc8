from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        ...


class LoggingEmailSender:
    """Keeps sent mail in `outbox` and logs it. Stands in until a mail provider is wired."""

    def __init__(self) -> None:
        self.outbox: list[OutgoingEmail] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append(OutgoingEmail(to=to, subject=subject, body=body))
        logger.info(f"email to={to} subject={subject!r} ({len(body)} chars)")
