"""
Password Hashing
bcrypt via passlib. The salt and cost factor are embedded in each digest.
"""

import logging

from passlib.context import CryptContext

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Hashes and verifies passwords with a configurable bcrypt work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Generate a salted bcrypt hash of password."""
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check if password matches password_hash.
        A malformed or unrecognised hash counts as a failed verification.
        """
        if not password or not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False

    def dummy_verify(self) -> None:
        """Spend the time of a real verification when there is no account to check."""
        self._context.dummy_verify()
