from __future__ import annotations

import copy
from typing import Any, Optional

from framebus.core.errors import StoreError
from framebus.core.ids import new_entity_id

from .base import ID_FIELD, Entity, Query


def _sort_key(field: str):
    def key(record: Entity) -> tuple[bool, Any]:
        v = record.get(field)
        # Records missing the field sort last.
        return (v is None, "" if v is None else v)

    return key


class InMemoryEntityStore:
    """Dict-backed store for development and tests."""

    def __init__(self, seed: Optional[dict[str, list[Entity]]] = None) -> None:
        self._collections: dict[str, dict[str, Entity]] = {}
        for collection, records in (seed or {}).items():
            for record in records:
                self._put(collection, copy.deepcopy(record))

    def _put(self, collection: str, record: Entity) -> Entity:
        if not record.get(ID_FIELD):
            record[ID_FIELD] = new_entity_id()
        self._collections.setdefault(collection, {})[str(record[ID_FIELD])] = record
        return record

    async def get(self, collection: str, entity_id: str) -> Optional[Entity]:
        record = self._collections.get(collection, {}).get(str(entity_id))
        return copy.deepcopy(record) if record is not None else None

    def query(self, collection: str) -> Query:
        return Query(self._find, collection)

    async def _find(self, collection: str, order_field: Optional[str], descending: bool) -> list[Entity]:
        records = [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]
        if order_field:
            records.sort(key=_sort_key(order_field), reverse=descending)
        return records

    async def insert(self, collection: str, record: Entity) -> Entity:
        stored = self._put(collection, copy.deepcopy(record))
        return copy.deepcopy(stored)

    async def update(self, collection: str, entity_id: str, partial: Entity) -> Entity:
        existing = self._collections.get(collection, {}).get(str(entity_id))
        if existing is None:
            raise StoreError(f"no {collection} entity with id {entity_id}")
        existing.update({k: copy.deepcopy(v) for k, v in partial.items() if k != ID_FIELD})
        return copy.deepcopy(existing)
