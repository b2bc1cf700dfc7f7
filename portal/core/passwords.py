"""Bcrypt credential hashing and verification."""

from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

BCRYPT_ROUNDS = 10
# bcrypt only reads this many bytes of the secret.
MAX_PASSWORD_BYTES = 72


def password_fits(password: str) -> bool:
    """True when the UTF-8 encoding fits inside bcrypt's input window."""
    return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


class PasswordTooLongError(ValueError):
    """Password would be truncated by bcrypt."""

    def __init__(self) -> None:
        super().__init__(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")


class CredentialVerifier:
    """Hash and verify portal passwords with a fixed bcrypt cost."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
            bcrypt__truncate_error=True,
        )

    def hash(self, password: str) -> str:
        """Return a salted bcrypt hash; over-long passwords raise PasswordTooLongError."""
        if not password_fits(password):
            raise PasswordTooLongError()
        return str(self._context.hash(password))

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Return True only when the password matches a well-formed stored hash."""
        if not password_hash or not password_fits(password):
            return False
        try:
            return bool(self._context.verify(password, password_hash))
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> None:
        """Spend one verification so unknown accounts cost as much as known ones."""
        self._context.dummy_verify()


@lru_cache
def get_credential_verifier() -> CredentialVerifier:
    """Create and cache the process-wide credential verifier."""
    return CredentialVerifier()
