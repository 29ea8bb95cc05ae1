"""Base user store interface for Warden.

All store adapters (in-memory, SQLite, etc.) must inherit from UserStore.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class UserRecord:
    """Stored credential record.

    Attributes:
        email: Natural key for lookup. Unique across the store.
        password: Hashed representation once persisted.
        role: Free-form role label (e.g. "ADMIN", "USER").
        id: Assigned by the store on first save; None before that.
        created_at: UTC time of first save.
        updated_at: UTC time of the latest save.
    """

    email: str
    password: str = field(repr=False)
    role: str = "USER"
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserStore(ABC):
    """Abstract base class for user record persistence.

    Stores are keyed by id and indexed by unique email. Implementations
    guard their own state so all methods are safe to call from concurrent
    threads, and they hand out copies so callers never alias stored state.

    Contract:
        find_by_email / find_by_id  → record or None (absence is not an error)
        save                        → insert when id is None, else update by id
        delete                      → False when the record is already absent
    """

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Look up a record by exact email."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        """Look up a record by identity."""
        pass

    @abstractmethod
    def find_all(self) -> List[UserRecord]:
        """Return every stored record. Order is not part of the contract."""
        pass

    @abstractmethod
    def save(self, record: UserRecord) -> UserRecord:
        """Insert or update a record and return the persisted copy.

        Raises:
            EmailConflictError: another record already holds this email.
            StorageError: any other backend failure, including an update
                for an id that is not stored.
        """
        pass

    @abstractmethod
    def delete(self, record: UserRecord) -> bool:
        """Remove a record by identity. Returns True if a record was removed."""
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass
