"""
Local Key-Value Store
=====================

Durable, process-local storage for client state (session, login attempt
table, remembered login name).

Values are whole JSON documents; there are no partial updates.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Final, Optional


SESSION_KEY: Final[str] = "session"
ATTEMPTS_KEY: Final[str] = "loginAttempts_v1"
REMEMBERED_USER_KEY: Final[str] = "rememberedUser"


class LocalKeyValueStore:
    """
    SQLite-backed key-value store.

    Usage:
        store = LocalKeyValueStore(config.paths.local_store_path)
        store.set(SESSION_KEY, {"user": None})
        store.get(SESSION_KEY)
        store.remove(SESSION_KEY)

    A connection is opened per operation, so the store can be shared by
    components without holding the database open.
    """

    __slots__ = ("_db_path",)

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS kv (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Args:
            db_path: Path to the SQLite database file
        """
        self._db_path = Path(db_path)
        self.initialize_db()

    @property
    def path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def initialize_db(self) -> None:
        """Create the parent directory and schema if missing."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._get_connection()
        try:
            with conn:
                conn.executescript(self._SCHEMA)
        finally:
            conn.close()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the decoded value for ``key``.

        A missing key or an undecodable value yields ``default``.
        """
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()

        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            return default

    def set(self, key: str, value: Any) -> None:
        """Replace the whole value stored under ``key``."""
        payload = json.dumps(value, separators=(",", ":"))
        conn = self._get_connection()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, payload),
                )
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = self._get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        finally:
            conn.close()

    def keys(self) -> list[str]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        finally:
            conn.close()
        return [row[0] for row in rows]

    def __repr__(self) -> str:
        return f"LocalKeyValueStore(path={str(self._db_path)!r})"


def load_json_mapping(store: LocalKeyValueStore, key: str) -> dict[str, Any]:
    """Read a JSON object, treating anything else as empty."""
    value: Optional[Any] = store.get(key)
    return dict(value) if isinstance(value, dict) else {}
