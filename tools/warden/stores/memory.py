"""In-process user store backed by dictionaries. Nothing is persisted to disk."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from warden.errors import EmailConflictError, StorageError
from warden.stores.base import UserRecord, UserStore


class InMemoryUserStore(UserStore):
    """Dict-backed store with an email index, guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[int, UserRecord] = {}
        self._ids_by_email: Dict[str, int] = {}
        self._next_id = 1

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            if user_id is None:
                return None
            return replace(self._records[user_id])

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self._lock:
            record = self._records.get(user_id)
            return replace(record) if record else None

    def find_all(self) -> List[UserRecord]:
        with self._lock:
            return [replace(self._records[k]) for k in sorted(self._records)]

    def save(self, record: UserRecord) -> UserRecord:
        now = datetime.now(timezone.utc)
        with self._lock:
            owner = self._ids_by_email.get(record.email)
            if owner is not None and owner != record.id:
                raise EmailConflictError(record.email)

            if record.id is None:
                stored = replace(
                    record, id=self._next_id, created_at=now, updated_at=now
                )
                self._next_id += 1
            else:
                existing = self._records.get(record.id)
                if existing is None:
                    raise StorageError(f"No user with id {record.id}")
                del self._ids_by_email[existing.email]
                stored = replace(
                    record, created_at=existing.created_at, updated_at=now
                )

            self._records[stored.id] = stored
            self._ids_by_email[stored.email] = stored.id
            return replace(stored)

    def delete(self, record: UserRecord) -> bool:
        if record.id is None:
            return False
        with self._lock:
            existing = self._records.pop(record.id, None)
            if existing is None:
                return False
            del self._ids_by_email[existing.email]
            return True
