from __future__ import annotations

import asyncio
import json
import threading
from typing import Any, Optional

from framebus.core.errors import StoreError
from framebus.core.ids import new_entity_id

from .base import ID_FIELD, Entity, Query


class PostgresEntityStore:
    """PostgreSQL implementation for production.

    Every collection lives in one JSONB table:

    CREATE TABLE IF NOT EXISTS entities (
        collection VARCHAR(64) NOT NULL,
        id VARCHAR(64) NOT NULL,
        body JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (collection, id)
    );
    CREATE INDEX IF NOT EXISTS idx_entities_collection ON entities(collection);

    psycopg2 is blocking, so each call runs in a worker thread.
    """

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._conn = None
        self._lock = threading.Lock()

    def _get_conn(self):
        if self._conn is None:
            import psycopg2  # type: ignore

            self._conn = psycopg2.connect(self._dsn)
        return self._conn

    def _run(self, sql: str, params: tuple, *, fetch: str = "none") -> Any:
        with self._lock:
            try:
                conn = self._get_conn()
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    if fetch == "one":
                        result = cur.fetchone()
                    elif fetch == "all":
                        result = cur.fetchall()
                    else:
                        result = None
                conn.commit()
                return result
            except Exception as e:
                if self._conn is not None:
                    try:
                        self._conn.rollback()
                    except Exception:
                        # Broken connection: drop it and reconnect next time.
                        self._conn = None
                raise StoreError(str(e)) from e

    @staticmethod
    def _body(row_body: Any, entity_id: str) -> Entity:
        body = row_body if isinstance(row_body, dict) else json.loads(row_body)
        body[ID_FIELD] = entity_id
        return body

    def _get_sync(self, collection: str, entity_id: str) -> Optional[Entity]:
        row = self._run(
            "SELECT id, body FROM entities WHERE collection = %s AND id = %s",
            (collection, str(entity_id)),
            fetch="one",
        )
        return self._body(row[1], row[0]) if row else None

    def _find_sync(self, collection: str, order_field: Optional[str], descending: bool) -> list[Entity]:
        sql = "SELECT id, body FROM entities WHERE collection = %s"
        params: tuple = (collection,)
        if order_field:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY body->>%s {direction} NULLS LAST, created_at {direction}"
            params = (collection, order_field)
        rows = self._run(sql, params, fetch="all")
        return [self._body(body, eid) for (eid, body) in rows]

    def _insert_sync(self, collection: str, record: Entity) -> Entity:
        body = dict(record)
        entity_id = str(body.pop(ID_FIELD, None) or new_entity_id())
        self._run(
            "INSERT INTO entities (collection, id, body) VALUES (%s, %s, %s::jsonb)",
            (collection, entity_id, json.dumps(body, default=str)),
        )
        body[ID_FIELD] = entity_id
        return body

    def _update_sync(self, collection: str, entity_id: str, partial: Entity) -> Entity:
        patch = {k: v for k, v in partial.items() if k != ID_FIELD}
        row = self._run(
            """
            UPDATE entities SET body = body || %s::jsonb, updated_at = NOW()
            WHERE collection = %s AND id = %s
            RETURNING id, body
            """,
            (json.dumps(patch, default=str), collection, str(entity_id)),
            fetch="one",
        )
        if row is None:
            raise StoreError(f"no {collection} entity with id {entity_id}")
        return self._body(row[1], row[0])

    async def get(self, collection: str, entity_id: str) -> Optional[Entity]:
        return await asyncio.to_thread(self._get_sync, collection, entity_id)

    def query(self, collection: str) -> Query:
        return Query(self._find, collection)

    async def _find(self, collection: str, order_field: Optional[str], descending: bool) -> list[Entity]:
        return await asyncio.to_thread(self._find_sync, collection, order_field, descending)

    async def insert(self, collection: str, record: Entity) -> Entity:
        return await asyncio.to_thread(self._insert_sync, collection, record)

    async def update(self, collection: str, entity_id: str, partial: Entity) -> Entity:
        return await asyncio.to_thread(self._update_sync, collection, entity_id, partial)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
