"""
Warden: user credential management.

Registers users with bcrypt-hashed passwords, enforces email uniqueness and
resolves stored credential records for an authentication layer.

Architecture:
    caller → CredentialService → UserStore (memory | SQLite)
                               → PasswordHasher (bcrypt)

Components:
    - UserStore: Abstract keyed storage of UserRecord (unique email)
    - PasswordHasher: One-way hash + verification contract
    - CredentialService: Registration and credential lookup, returns Outcome
    - Authenticator: Email/password check on top of CredentialService

Usage:
    from warden import CredentialService, InMemoryUserStore, BcryptHasher

    service = CredentialService(InMemoryUserStore(), BcryptHasher())
    outcome = service.register_user("owl@example.com", "s3cret", role="ADMIN")
    if outcome.ok:
        print(outcome.record.id)
"""

__version__ = "0.1.0"

from .authenticator import Authenticator
from .errors import (
    CredentialError,
    CredentialNotFound,
    DuplicateEmail,
    EmailConflictError,
    InvalidCredential,
    Outcome,
    StorageError,
    StorageFailure,
)
from .hashing import BcryptHasher, PasswordHasher
from .service import CredentialService
from .stores import InMemoryUserStore, SQLiteUserStore, UserRecord, UserStore

__all__ = [
    "Authenticator",
    "BcryptHasher",
    "CredentialError",
    "CredentialNotFound",
    "CredentialService",
    "DuplicateEmail",
    "EmailConflictError",
    "InMemoryUserStore",
    "InvalidCredential",
    "Outcome",
    "PasswordHasher",
    "SQLiteUserStore",
    "StorageError",
    "StorageFailure",
    "UserRecord",
    "UserStore",
]
