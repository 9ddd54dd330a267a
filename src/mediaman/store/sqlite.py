from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from ..codec import decode_record
from .base import KeyValueStore, StoreBackend

logger = logging.getLogger(__name__)


class SqliteStore(KeyValueStore):
    """One namespace inside a shared SQLite ``records`` table.

    Keys enumerate in first-insertion order; overwriting a key keeps its slot.
    """

    def __init__(self, namespace: str, backend: "SqliteBackend") -> None:
        super().__init__(namespace)
        self.backend = backend

    async def get_item(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._get, key)

    async def set_item(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._keys)

    def _get(self, key: str) -> Optional[Any]:
        with self.backend.connect() as conn:
            row = conn.execute(
                "SELECT value FROM records WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            ).fetchone()
        if row is None:
            return None
        return decode_record(row["value"])

    def _set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False, sort_keys=True)
        with self.backend.connect() as conn:
            conn.execute(
                """
                INSERT INTO records (namespace, key, value) VALUES (?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (self.namespace, key, payload),
            )

    def _remove(self, key: str) -> None:
        with self.backend.connect() as conn:
            conn.execute("DELETE FROM records WHERE namespace = ? AND key = ?", (self.namespace, key))

    def _keys(self) -> List[str]:
        with self.backend.connect() as conn:
            rows = conn.execute(
                "SELECT key FROM records WHERE namespace = ? ORDER BY id",
                (self.namespace,),
            ).fetchall()
        return [row["key"] for row in rows]


class SqliteBackend(StoreBackend):
    """All namespaces in one database file; the schema is created on first use."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on clean exit and is always closed."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(namespace, key)
                )
                """
            )
        logger.debug("SQLite store ready at %s", self.path)

    def open(self, namespace: str) -> SqliteStore:
        return SqliteStore(namespace, self)

