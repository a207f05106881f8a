from datetime import datetime
from typing import Protocol

from staffauth.components.password_reset.ports import TimePort
from staffauth.components.reset_token.ports import ResetTokenCodecPort
from staffauth.core.ports.email import EmailPort
from staffauth.domain.entities import User


class UserRepoPort(Protocol):
    def lock_all_and_revoke_sessions(self, now: datetime) -> tuple[list[User], int]:
        """Lock every account and delete every session as one unit.

        Returns the locked users and the number of sessions removed.
        """
        ...


__all__ = ["EmailPort", "ResetTokenCodecPort", "TimePort", "UserRepoPort"]
