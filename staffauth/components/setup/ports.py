from typing import Protocol

from staffauth.components.auth.ports import AuthAdapterPort as SessionAuthAdapterPort
from staffauth.components.auth.ports import SessionStorePort, TimePort
from staffauth.core.ports.email import EmailPort
from staffauth.domain.entities import User


class UserRepoPort(Protocol):
    def get_owner(self) -> User | None: ...
    def get_by_email(self, email: str) -> User | None: ...

    def create_owner(self, owner: User, settings: dict[str, str]) -> User:
        """Atomic. Raises OwnerExistsError or DuplicateEmailError."""
        ...

    def update_owner(self, owner: User, settings: dict[str, str], revoke_sessions: bool) -> User:
        """Atomic. Raises DuplicateEmailError."""
        ...


class AuthAdapterPort(SessionAuthAdapterPort, Protocol):
    def hash_password(self, password: str) -> str: ...


class SettingsCachePort(Protocol):
    def get(self, key: str, default: str | None = None) -> str | None: ...
    def invalidate_settings(self) -> None: ...


__all__ = [
    "AuthAdapterPort",
    "EmailPort",
    "SessionStorePort",
    "SettingsCachePort",
    "TimePort",
    "UserRepoPort",
]
