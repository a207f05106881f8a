from datetime import datetime
from typing import Protocol
from uuid import UUID

from staffauth.components.reset_token.ports import ResetTokenCodecPort
from staffauth.core.ports.email import EmailPort
from staffauth.domain.entities import User


class UserRepoPort(Protocol):
    def get_by_email(self, email: str) -> User | None: ...

    def change_password(
        self, user_id: UUID, expected_hash: str, new_hash: str, now: datetime
    ) -> User | None:
        """Swap the verifier if it still equals `expected_hash`, reactivate the
        account and drop all of the user's sessions. None if the swap lost."""
        ...


class AuthAdapterPort(Protocol):
    def hash_password(self, password: str) -> str: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


__all__ = [
    "AuthAdapterPort",
    "EmailPort",
    "ResetTokenCodecPort",
    "TimePort",
    "UserRepoPort",
]
