"""Error taxonomy and tagged outcomes for credential operations.

Two layers of errors exist:

    Store layer:    StorageError, EmailConflictError (raised by UserStore adapters)
    Service layer:  DuplicateEmail, CredentialNotFound, InvalidCredential,
                    StorageFailure (carried inside an Outcome)

The service never lets a store exception escape. It converts them into an
Outcome so callers branch on ``outcome.ok`` instead of catching exceptions.
``Outcome.unwrap()`` is there for callers that prefer raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from warden.stores.base import UserRecord


class StorageError(Exception):
    """Backend failure inside a UserStore adapter (connectivity, constraints)."""


class EmailConflictError(StorageError):
    """The store's unique-email constraint rejected a save."""

    def __init__(self, email: str):
        super().__init__(f"Email '{email}' is already stored")
        self.email = email


class CredentialError(Exception):
    """Base class for failures reported by CredentialService."""

    kind = "credential_error"


class DuplicateEmail(CredentialError):
    """Registration attempted for an email that already exists."""

    kind = "duplicate_email"

    def __init__(self, email: str):
        super().__init__(f"A user with email '{email}' already exists")
        self.email = email


class CredentialNotFound(CredentialError):
    """No credential record matches the identifier."""

    kind = "credential_not_found"

    def __init__(self, identifier: str):
        super().__init__(f"Unknown principal '{identifier}'")
        self.identifier = identifier


class InvalidCredential(CredentialError):
    """Registration input is malformed (empty email/password, bad email)."""

    kind = "invalid_credential"


class StorageFailure(CredentialError):
    """Opaque storage failure surfaced to the caller."""

    kind = "storage_failure"


@dataclass(frozen=True)
class Outcome:
    """Tagged result of a service call.

    Attributes:
        ok: True on success.
        record: The persisted or resolved record when ``ok``.
        error: The failure when not ``ok``.
    """

    ok: bool
    record: Optional["UserRecord"] = None
    error: Optional[CredentialError] = None

    @classmethod
    def success(cls, record: "UserRecord") -> "Outcome":
        return cls(ok=True, record=record)

    @classmethod
    def failure(cls, error: CredentialError) -> "Outcome":
        return cls(ok=False, error=error)

    def unwrap(self) -> "UserRecord":
        """Return the record or raise the carried error."""
        if not self.ok:
            raise self.error
        return self.record
