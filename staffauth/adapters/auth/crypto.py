import hashlib
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class Argon2AuthAdapter:
    """Password verifiers via argon2, opaque session tokens via `secrets`."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self.ph = hasher or PasswordHasher()

    def hash_password(self, password: str) -> str:
        return str(self.ph.hash(password))

    def verify_password(self, password: str, hash_str: str) -> bool:
        try:
            self.ph.verify(hash_str, password)
            return True
        except (VerificationError, InvalidHashError):
            return False

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def create_token(self) -> str:
        return secrets.token_urlsafe(32)
