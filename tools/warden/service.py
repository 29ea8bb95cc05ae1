"""CredentialService: registration and credential lookup.

Flows:
    register:        validate → store.find_by_email → [DuplicateEmail | hash → store.save]
    load_credential: store.find_by_email → [CredentialNotFound | record]

The service is stateless; all mutable state lives in the store. The
find-then-save sequence is not atomic here, so a concurrent registration
for the same email can slip past the pre-check. The store's uniqueness
constraint catches it and the resulting EmailConflictError is reported as
the same DuplicateEmail failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from warden import events
from warden.errors import (
    CredentialNotFound,
    DuplicateEmail,
    EmailConflictError,
    InvalidCredential,
    Outcome,
    StorageError,
    StorageFailure,
)
from warden.hashing import PasswordHasher
from warden.stores.base import UserRecord, UserStore

logger = logging.getLogger("warden.service")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CredentialService:
    """Registers users and resolves stored credentials.

    Args:
        store: UserStore implementation holding the records.
        hasher: PasswordHasher used for the one-way transformation.
        normalize_emails: Strip and lower-case emails before they reach the
            store. Stores themselves compare emails exactly.
    """

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        normalize_emails: bool = True,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.normalize_emails = normalize_emails

    def _email(self, email: str) -> str:
        if self.normalize_emails:
            return normalize_email(email)
        return email or ""

    def register(self, candidate: UserRecord) -> Outcome:
        """Persist ``candidate`` with its plaintext password replaced by a hash.

        The candidate object itself is left untouched.

        Returns:
            Outcome carrying the persisted record, or one of DuplicateEmail,
            InvalidCredential, StorageFailure.
        """
        email = self._email(candidate.email)
        if not email or "@" not in email:
            events.log_event("registration_rejected", email=email, reason="invalid_email")
            return Outcome.failure(InvalidCredential(f"Invalid email '{email}'"))
        if not candidate.password:
            events.log_event("registration_rejected", email=email, reason="empty_password")
            return Outcome.failure(InvalidCredential("Password cannot be empty"))
        if not self.hasher.accepts(candidate.password):
            events.log_event("registration_rejected", email=email, reason="password_too_long")
            return Outcome.failure(InvalidCredential("Password is too long"))

        try:
            if self.store.find_by_email(email) is not None:
                logger.warning(f"Registration rejected, email already exists: {email}")
                events.log_event("registration_rejected", email=email, reason="duplicate_email")
                return Outcome.failure(DuplicateEmail(email))

            hashed = replace(
                candidate,
                email=email,
                password=self.hasher.hash(candidate.password),
                id=None,
            )
            saved = self.store.save(hashed)
        except EmailConflictError:
            logger.warning(f"Registration lost a race on email: {email}")
            events.log_event("registration_rejected", email=email, reason="duplicate_email")
            return Outcome.failure(DuplicateEmail(email))
        except StorageError as e:
            logger.error(f"Registration failed for {email}: {e}")
            return Outcome.failure(StorageFailure(str(e)))

        logger.info(f"Registered user {saved.id} ({saved.email}, role={saved.role})")
        events.log_event("user_registered", user_id=saved.id, email=saved.email, role=saved.role)
        return Outcome.success(saved)

    def register_user(self, email: str, password: str, role: str = "USER") -> Outcome:
        """Register from plain fields. See ``register``."""
        return self.register(UserRecord(email=email, password=password, role=role))

    def load_credential(self, identifier: str) -> Outcome:
        """Resolve the stored record for an email, hash included.

        No password comparison happens here; the authentication layer does
        that with ``PasswordHasher.verify``.
        """
        email = self._email(identifier)
        try:
            record = self.store.find_by_email(email)
        except StorageError as e:
            logger.error(f"Credential lookup failed for {email}: {e}")
            return Outcome.failure(StorageFailure(str(e)))

        if record is None:
            logger.debug(f"No credential for {email}")
            events.log_event("credential_lookup_failed", email=email)
            return Outcome.failure(CredentialNotFound(email))
        return Outcome.success(record)

    async def register_async(self, candidate: UserRecord) -> Outcome:
        """Run ``register`` in a worker thread.

        Wrap in ``asyncio.wait_for`` to impose a timeout; a cancelled wait
        leaves either a complete record or none, because ``save`` is atomic.
        """
        return await asyncio.to_thread(self.register, candidate)

    async def load_credential_async(self, identifier: str) -> Outcome:
        """Run ``load_credential`` in a worker thread."""
        return await asyncio.to_thread(self.load_credential, identifier)
