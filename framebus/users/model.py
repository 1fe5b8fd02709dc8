from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from framebus.store.base import ID_FIELD, Entity


@dataclass(frozen=True)
class User:
    """Read-only view of a site member."""
    user_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    created_date: Optional[str] = None
    last_login_date: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_entity(cls, e: Entity) -> "User":
        return cls(
            user_id=str(e.get(ID_FIELD, "")),
            email=e.get("email", ""),
            first_name=e.get("firstName", ""),
            last_name=e.get("lastName", ""),
            created_date=e.get("createdDate"),
            last_login_date=e.get("lastLoginDate"),
            is_active=bool(e.get("isActive", True)),
        )

    def to_listing(self) -> dict[str, Any]:
        return {
            "id": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "createdDate": self.created_date,
            "lastLoginDate": self.last_login_date,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class SessionUser:
    user_id: str
    email: str


class UserSession(Protocol):
    """The host page's signed-in member, if any."""

    async def current_user(self) -> Optional[SessionUser]:
        ...


class StaticUserSession:
    """Session with a fixed member (or none). Used by the service and tests."""

    def __init__(self, user: Optional[SessionUser] = None) -> None:
        self._user = user

    async def current_user(self) -> Optional[SessionUser]:
        return self._user
