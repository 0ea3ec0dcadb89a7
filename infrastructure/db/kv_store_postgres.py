from __future__ import annotations

from typing import Any, Mapping, Optional

import psycopg2
from psycopg2.extras import Json

from domain.repositories import KeyValueStore


class PostgresKeyValueStore(KeyValueStore):
    """
    Postgres-backed implementation of `KeyValueStore`.

    Schema (minimal):
      - key TEXT PRIMARY KEY
      - value JSONB
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value JSONB NOT NULL
                    )
                    """
                )
                conn.commit()

    def get(self, key: str) -> Optional[Any]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
                if not row:
                    return None
                # psycopg2 decodes JSONB columns itself.
                return row[0]

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                for key, value in items.items():
                    cur.execute(
                        """
                        INSERT INTO kv_store (key, value)
                        VALUES (%s, %s)
                        ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
                        """,
                        (key, Json(value)),
                    )
                conn.commit()
