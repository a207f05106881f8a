from datetime import datetime
from typing import Protocol
from uuid import UUID

from staffauth.domain.entities import Session, User


class UserRepoPort(Protocol):
    def get_by_email(self, email: str) -> User | None: ...
    def get_by_id(self, user_id: UUID) -> User | None: ...


class AuthAdapterPort(Protocol):
    def verify_password(self, password: str, hash_str: str) -> bool: ...
    def hash_token(self, token: str) -> str: ...
    def create_token(self) -> str: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class SessionStorePort(Protocol):
    """Sessions keyed by the hash of their token."""

    def get(self, token_hash: str) -> Session | None: ...

    def save(self, session: Session) -> bool:
        """Store the session if its user is active. Returns False otherwise."""
        ...

    def delete(self, token_hash: str) -> None: ...
