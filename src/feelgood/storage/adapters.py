"""Key-value adapters for locally persisted application state."""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Iterator, Sequence


class StateAdapter(ABC):
    """Minimal keyed-blob store used by the local storage layer."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create missing tables required by the storage layer."""

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the blob stored under ``key`` or ``None``."""

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` replacing any previous blob."""


class MemoryAdapter(StateAdapter):
    """Dictionary-backed adapter for ephemeral sessions."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def ensure_schema(self) -> None:
        return None

    def read(self, key: str) -> str | None:
        return self._blobs.get(key)

    def write(self, key: str, value: str) -> None:
        self._blobs[key] = value


class SQLiteAdapter(StateAdapter):
    """SQLite implementation of :class:`StateAdapter`."""

    def __init__(self, dsn: str) -> None:
        """Connect to SQLite and configure database pragmas.

        Args:
            dsn: Database path or special ``:memory:`` name.

        """
        self._connection = sqlite3.connect(dsn)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA journal_mode=WAL")

    def ensure_schema(self) -> None:
        """Create the key-value table when it is missing."""
        with self.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        """Yield a SQLite cursor and commit on success."""
        cur = self._connection.cursor()
        try:
            yield cur
            self._connection.commit()
        finally:
            cur.close()

    def fetchone(self, query: str, params: Sequence[Any] | None = None) -> Any:
        """Fetch a single row using the provided query.

        Args:
            query: SQL query to execute.
            params: Positional parameters to interpolate.

        Returns:
            First row returned by the query or ``None``.

        """
        with self.cursor() as cur:
            cur.execute(query, params or [])
            return cur.fetchone()

    def read(self, key: str) -> str | None:
        row = self.fetchone("SELECT value FROM app_state WHERE key=?", (key,))
        return row["value"] if row else None

    def write(self, key: str, value: str) -> None:
        with self.cursor() as cur:
            cur.execute(
                """
                INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (key, value, datetime.now(UTC).isoformat()),
            )

    def close(self) -> None:
        self._connection.close()
