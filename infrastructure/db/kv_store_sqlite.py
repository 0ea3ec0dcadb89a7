from __future__ import annotations

import json
import sqlite3
from typing import Any, Mapping, Optional

from domain.repositories import KeyValueStore


class SqliteKeyValueStore(KeyValueStore):
    """
    SQLite-backed implementation of `KeyValueStore`.

    Values are stored as JSON text in a `kv_store` table keyed by the exact
    string key. The table is created if needed.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get(self, key: str) -> Optional[Any]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cur.fetchone()
            if not row:
                return None
            return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        rows = [(key, json.dumps(value)) for key, value in items.items()]
        # The connection context manager commits all rows at once or rolls
        # every one of them back.
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.executemany(
                """
                INSERT INTO kv_store (key, value)
                VALUES (?, ?)
                ON CONFLICT (key) DO UPDATE SET value = excluded.value
                """,
                rows,
            )
            conn.commit()
