from __future__ import annotations

import logging
from typing import Optional

from framebus.contracts import catalog
from framebus.contracts.payloads import NoPayload
from framebus.core.errors import BusError
from framebus.core.models import Reply, RequestId
from framebus.store.base import EntityStore
from framebus.users.model import User, UserSession

logger = logging.getLogger(__name__)


class UserHandlers:
    def __init__(self, store: EntityStore, session: UserSession) -> None:
        self._store = store
        self._session = session

    async def user_data(self, payload: NoPayload, request_id: Optional[RequestId]) -> Reply:
        try:
            user = await self._session.current_user()
        except Exception as e:
            logger.exception("current user lookup failed")
            raise BusError("Failed to fetch user data") from e

        if user is None:
            return Reply(catalog.USER_DATA_RESPONSE, {"user": None})
        return Reply(
            catalog.USER_DATA_RESPONSE,
            {"user": {"id": user.user_id, "email": user.email, "isLoggedIn": True}},
        )

    async def fetch_users(self, payload: NoPayload, request_id: Optional[RequestId]) -> Reply:
        try:
            rows = await self._store.query(catalog.USERS_COLLECTION).order_by("createdDate").find()
        except Exception as e:
            logger.exception("fetching users failed")
            raise BusError("Failed to fetch users") from e
        users = [User.from_entity(r).to_listing() for r in rows]
        logger.info(f"sending {len(users)} users to frame")
        return Reply(catalog.FETCH_USERS_RESPONSE, {"users": users})
