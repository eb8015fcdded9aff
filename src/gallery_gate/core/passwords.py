"""Password handling for protected public links."""

from typing import Protocol

import bcrypt


class PasswordChecker(Protocol):
    """Verifies a clear-text password against a stored hash."""

    def verify(self, password: str, hashed: bytes) -> bool: ...


def hash_password(password: str, *, rounds: int = 12) -> bytes:
    """Hash a link password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))


class BcryptPasswordChecker:
    """PasswordChecker backed by bcrypt."""

    def verify(self, password: str, hashed: bytes) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed)
        except ValueError:
            # Malformed hash in the share record
            return False
