"""
Local Storage - persistent string key-value store

Mirrors the browser localStorage surface (get_item / set_item / remove_item /
keys / length) on top of SQLite, so cached scans and first-deposit markers
survive across sessions.

Every call is synchronous. A read-modify-write done without an await in
between cannot interleave with other tasks on the event loop.
"""

import sqlite3
import logging
from typing import List, Optional

from .config import get_config
from .errors import StorageError

logger = logging.getLogger("LocalStorage")


class LocalStorage:
    """SQLite-backed key-value store. Pass ``":memory:"`` for a throwaway store."""

    def __init__(self, db_path: str = "arca_cache.db"):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def _init_database(self):
        """Open the connection and create the table"""
        try:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open local storage at {self.db_path}", e)
        logger.debug(f"Local storage opened: {self.db_path}")

    def _execute(self, sql: str, params: tuple = (), commit: bool = False) -> List[tuple]:
        if self._conn is None:
            raise StorageError("Local storage is closed")
        try:
            cursor = self._conn.execute(sql, params)
            rows = cursor.fetchall()
            if commit:
                self._conn.commit()
            return rows
        except sqlite3.Error as e:
            raise StorageError(f"Local storage query failed: {sql.split()[0]}", e)

    # ==========================================
    # localStorage SURFACE
    # ==========================================

    def get_item(self, key: str) -> Optional[str]:
        rows = self._execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        return rows[0][0] if rows else None

    def set_item(self, key: str, value: str):
        self._execute(
            "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
            (key, str(value)),
            commit=True,
        )

    def remove_item(self, key: str):
        self._execute("DELETE FROM kv_store WHERE key = ?", (key,), commit=True)

    def keys(self) -> List[str]:
        return [row[0] for row in self._execute("SELECT key FROM kv_store ORDER BY key")]

    def length(self) -> int:
        return self._execute("SELECT COUNT(*) FROM kv_store")[0][0]

    def clear(self):
        self._execute("DELETE FROM kv_store", commit=True)

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None


_storage: Optional[LocalStorage] = None


def get_storage() -> LocalStorage:
    """Process-wide store at the configured path (lazy initialization)."""
    global _storage
    if _storage is None:
        _storage = LocalStorage(get_config().storage.sqlite_path)
    return _storage
