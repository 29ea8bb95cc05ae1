"""Password hashing helpers.

Uses bcrypt (salted, adaptive cost) for the one-way transformation.
Digests are stored as UTF-8 strings; plaintext never leaves these calls.

bcrypt only reads the first 72 bytes of its input, so passwords longer than
that (in UTF-8) are not accepted: ``hash`` raises ValueError and both
``verify`` and ``verify_dummy`` return False after doing the same bcrypt
work as any other check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import bcrypt

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


class PasswordHasher(ABC):
    """One-way password transformation with verification by recomputation."""

    @abstractmethod
    def hash(self, plaintext: str) -> str:
        """Return an opaque digest for ``plaintext``."""
        pass

    @abstractmethod
    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if ``plaintext`` produces ``digest``."""
        pass

    def accepts(self, plaintext: str) -> bool:
        """Return False if ``plaintext`` cannot be hashed by this hasher."""
        return True

    def verify_dummy(self, plaintext: str) -> bool:
        """Spend the same effort as a real verification and return False.

        Called for unknown principals so that response time does not
        reveal whether an email exists.
        """
        return False


class BcryptHasher(PasswordHasher):
    """bcrypt-backed hasher.

    Args:
        rounds: bcrypt cost factor (log2 iterations), 4-31. Defaults to 12.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        self._dummy_hash = bcrypt.hashpw(b"dummy", bcrypt.gensalt(rounds))

    def accepts(self, plaintext: str) -> bool:
        return len(plaintext.encode("utf-8")) <= MAX_PASSWORD_BYTES

    def hash(self, plaintext: str) -> str:
        if not self.accepts(plaintext):
            raise ValueError(f"Password is longer than {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(
            plaintext.encode("utf-8"), bcrypt.gensalt(self.rounds)
        ).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        if not self.accepts(plaintext):
            return self.verify_dummy(plaintext)
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # malformed digest (not a bcrypt hash)
            return False

    def verify_dummy(self, plaintext: str) -> bool:
        # truncated input keeps bcrypt's cost without tripping its length check
        bcrypt.checkpw(plaintext.encode("utf-8")[:MAX_PASSWORD_BYTES], self._dummy_hash)
        return False
