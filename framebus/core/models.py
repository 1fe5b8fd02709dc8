from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

# Opaque correlation token. Echoed back exactly as received.
RequestId = Union[str, int, float]


@dataclass(frozen=True)
class Envelope:
    type: str
    # An object for every type except pass-through payloads such as CHECKOUT_DATA.
    data: Any = field(default_factory=dict)
    id: Optional[RequestId] = None
    timestamp: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": self.type, "data": self.data}
        if self.id is not None:
            d["id"] = self.id
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        return d


@dataclass(frozen=True)
class Reply:
    """What a handler returns: the router wraps it into an envelope with the request id."""

    type: str
    data: Dict[str, Any]
