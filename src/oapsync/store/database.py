"""Shared SQLite handle for all persistent stores.

One connection is opened per run and guarded by a single lock, so the mint
and import stages can both use it. Every public call runs in its own
transaction; nothing spans more than one call.
"""

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

__all__ = ["OapDatabase", "MEMORY"]

MEMORY = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS raw_items (
        campus_id TEXT PRIMARY KEY,
        doc_key TEXT NOT NULL,
        updated TEXT NOT NULL,
        item_data TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_raw_items_doc_key ON raw_items(doc_key)",
    """
    CREATE TABLE IF NOT EXISTS ids (
        campus_id TEXT PRIMARY KEY,
        oap_id TEXT NOT NULL,
        updated TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_ids_oap_id ON ids(oap_id)",
    """
    CREATE TABLE IF NOT EXISTS oap_hashes (
        oap_id TEXT PRIMARY KEY,
        updated TEXT NOT NULL,
        hash TEXT NOT NULL,
        oap_users TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oap_flags (
        oap_id TEXT PRIMARY KEY,
        is_joined INTEGER NOT NULL,
        is_elem_compat INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pubs (
        oap_id TEXT PRIMARY KEY,
        pub_id TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pubs_pub_id ON pubs(pub_id)",
    """
    CREATE TABLE IF NOT EXISTS emails (
        email TEXT PRIMARY KEY,
        proprietary_id TEXT NOT NULL
    )
    """,
)


class OapDatabase:
    """Lock-guarded SQLite connection with the oapsync schema.

    Parameters
    ----------
    path : Path | str
        Database file, or ``":memory:"``.
    busy_timeout_seconds : float, optional
        How long to wait on a database locked by another process.
    """

    def __init__(self, path: Path | str, busy_timeout_seconds: float = 30.0) -> None:
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, timeout=busy_timeout_seconds, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self.transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def __enter__(self) -> "OapDatabase":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock and run statements in one committed transaction."""
        with self._lock, self._conn:
            yield self._conn

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one write statement and return the affected row count."""
        with self.transaction() as conn:
            return conn.execute(sql, params).rowcount

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """Return the first row of a query, or None."""
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def query_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Return all rows of a query."""
        with self._lock:
            return self._conn.execute(sql, params).fetchall()
