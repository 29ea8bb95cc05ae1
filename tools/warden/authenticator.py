"""Authentication integration on top of CredentialService.

Loads the principal by email and checks the supplied password against the
stored digest. Unknown emails and wrong passwords produce the same
CredentialNotFound failure, and unknown emails still pay for a dummy
verification so timing does not reveal which emails exist.
"""

from __future__ import annotations

import logging

from warden.errors import CredentialNotFound, Outcome
from warden.service import CredentialService

logger = logging.getLogger("warden.authenticator")


class Authenticator:
    """Verifies (email, password) pairs using a CredentialService."""

    def __init__(self, service: CredentialService) -> None:
        self.service = service

    def authenticate(self, email: str, password: str) -> Outcome:
        loaded = self.service.load_credential(email)
        if not loaded.ok:
            if isinstance(loaded.error, CredentialNotFound):
                self.service.hasher.verify_dummy(password or "")
            return loaded

        record = loaded.record
        if not password or not self.service.hasher.verify(password, record.password):
            logger.info(f"Authentication failed for {record.email}")
            return Outcome.failure(CredentialNotFound(record.email))

        logger.debug(f"Authenticated user {record.id}")
        return loaded
