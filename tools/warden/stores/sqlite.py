"""SQLite-backed user store with a unique email constraint."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from warden.errors import EmailConflictError, StorageError
from warden.stores.base import UserRecord, UserStore

DEFAULT_DB_PATH = ".warden/users.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE NOT NULL,
    password TEXT NOT NULL,
    role TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

logger = logging.getLogger("warden.stores.sqlite")


class SQLiteUserStore(UserStore):
    """SQLite user store.

    The ``users.email`` UNIQUE constraint is the final word on uniqueness:
    when two registrations for one email race past the service-level check,
    the loser's save raises EmailConflictError.

    Args:
        db_path: Path to SQLite database file, or ":memory:". Parent
                 directories are created automatically. Defaults to
                 ".warden/users.db".
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open user database {db_path}: {e}") from e

    def _row_to_record(self, row: sqlite3.Row) -> UserRecord:
        return UserRecord(
            id=row["id"],
            email=row["email"],
            password=row["password"],
            role=row["role"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _fetchone(self, query: str, params: tuple) -> Optional[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Query failed: {e}")
            raise StorageError(str(e)) from e

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Look up a record by exact email."""
        row = self._fetchone("SELECT * FROM users WHERE email = ?", (email,))
        return self._row_to_record(row) if row else None

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        """Look up a record by id."""
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._row_to_record(row) if row else None

    def find_all(self) -> List[UserRecord]:
        """Return all records ordered by id."""
        try:
            with self._lock:
                rows = self._conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        return [self._row_to_record(r) for r in rows]

    def save(self, record: UserRecord) -> UserRecord:
        """Insert when ``record.id`` is None, otherwise update that row.

        Each write is a single transaction; a failure rolls it back.
        """
        now = self._now()
        try:
            with self._lock, self._conn:
                if record.id is None:
                    cur = self._conn.execute(
                        "INSERT INTO users (email, password, role, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (record.email, record.password, record.role,
                         now.isoformat(), now.isoformat()),
                    )
                    return replace(
                        record, id=cur.lastrowid, created_at=now, updated_at=now
                    )

                cur = self._conn.execute(
                    "UPDATE users SET email = ?, password = ?, role = ?, updated_at = ? "
                    "WHERE id = ?",
                    (record.email, record.password, record.role,
                     now.isoformat(), record.id),
                )
                if cur.rowcount == 0:
                    raise StorageError(f"No user with id {record.id}")
                row = self._conn.execute(
                    "SELECT * FROM users WHERE id = ?", (record.id,)
                ).fetchone()
                return self._row_to_record(row)
        except sqlite3.IntegrityError as e:
            if "users.email" in str(e):
                raise EmailConflictError(record.email) from e
            raise StorageError(str(e)) from e
        except sqlite3.Error as e:
            logger.error(f"Save failed for user id={record.id}: {e}")
            raise StorageError(str(e)) from e

    def delete(self, record: UserRecord) -> bool:
        """Remove a record by id. Returns True if a row was deleted."""
        if record.id is None:
            return False
        try:
            with self._lock, self._conn:
                cur = self._conn.execute("DELETE FROM users WHERE id = ?", (record.id,))
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        return cur.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
