"""Entity store port.

The bus does not own orders or users; it borrows them through this
interface. Every operation may raise StoreError (infrastructure failure),
which callers keep distinct from "not found" (`get` returning None).
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol

Entity = dict[str, Any]

# Key under which the store keeps an entity's identifier.
ID_FIELD = "_id"

QueryRunner = Callable[[str, Optional[str], bool], Awaitable[list[Entity]]]


class Query:
    """`store.query("Orders").order_by("createdAt").find()`"""

    def __init__(self, runner: QueryRunner, collection: str) -> None:
        self._runner = runner
        self._collection = collection
        self._order_field: Optional[str] = None
        self._descending = False

    def order_by(self, field: str, *, descending: bool = False) -> "Query":
        self._order_field = field
        self._descending = descending
        return self

    async def find(self) -> list[Entity]:
        return await self._runner(self._collection, self._order_field, self._descending)


class EntityStore(Protocol):
    async def get(self, collection: str, entity_id: str) -> Optional[Entity]:
        """Return the entity or None when it does not exist."""
        ...

    def query(self, collection: str) -> Query:
        ...

    async def insert(self, collection: str, record: Entity) -> Entity:
        """Persist a new entity; the returned copy carries its `_id`."""
        ...

    async def update(self, collection: str, entity_id: str, partial: Entity) -> Entity:
        """Merge `partial` into an existing entity and return the result."""
        ...
