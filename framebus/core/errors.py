"""Error taxonomy for the host/frame bus.

Every error carries a human-readable message; the router turns it into an
ERROR envelope (or `success: false` for admin actions) with the request id.
"""

from __future__ import annotations


class BusError(Exception):
    """Base class. `str(err)` is what the frame receives."""


class ProtocolError(BusError):
    """Unknown command, unknown admin action or malformed envelope."""


class ValidationError(BusError, ValueError):
    """Missing required field or value outside its allowed set."""


class NotFoundError(BusError):
    """A referenced order or user does not exist."""


class StoreError(BusError):
    """The entity store operation itself failed (infrastructure)."""
