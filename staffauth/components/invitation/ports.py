from datetime import datetime
from typing import Protocol
from uuid import UUID

from staffauth.components.auth.ports import AuthAdapterPort as SessionAuthAdapterPort
from staffauth.components.auth.ports import SessionStorePort, TimePort
from staffauth.domain.entities import Invite, User


class InviteRepoPort(Protocol):
    def save(self, invite: Invite) -> Invite: ...
    def get_open_by_token_hash(self, token_hash: str, now: datetime) -> Invite | None: ...
    def get_open_by_email(self, email: str, now: datetime) -> Invite | None: ...

    def redeem(self, token_hash: str, user: User, now: datetime) -> Invite | None:
        """Consume the invite and insert the user atomically.

        Returns None if the invite is no longer open. Raises
        DuplicateEmailError, leaving the invite open.
        """
        ...


class UserRepoPort(Protocol):
    def get_by_email(self, email: str) -> User | None: ...
    def get_by_id(self, user_id: UUID) -> User | None: ...


class AuthAdapterPort(SessionAuthAdapterPort, Protocol):
    def hash_password(self, password: str) -> str: ...


__all__ = [
    "AuthAdapterPort",
    "InviteRepoPort",
    "SessionStorePort",
    "TimePort",
    "UserRepoPort",
]
