from __future__ import annotations

from dataclasses import dataclass

from staffauth.domain.entities import Invite, RoleType, Session, User
from staffauth.domain.errors import ErrorCode, ValidationError


@dataclass(frozen=True)
class InvitationPolicy:
    min_password_length: int = 10
    session_ttl_minutes: int = 24 * 60


@dataclass(frozen=True)
class CheckInvitationInput:
    email: str


@dataclass(frozen=True)
class AcceptInvitationInput:
    token: str
    email: str
    password: str
    name: str


@dataclass(frozen=True)
class CreateInvitationInput:
    creator: User
    email: str
    role: RoleType = "contributor"
    days_valid: int = 7


@dataclass(frozen=True)
class InvitationStatusOutput:
    is_invited: bool = False
    invited_by: str | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None
    errors: tuple[ValidationError, ...] = ()


@dataclass(frozen=True)
class AcceptInvitationOutput:
    user: User | None = None
    session: Session | None = None
    token_raw: str | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None
    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def failed(
        cls, code: ErrorCode, message: str, errors: tuple[ValidationError, ...] = ()
    ) -> AcceptInvitationOutput:
        return cls(success=False, error=message, error_code=code, errors=errors)


@dataclass(frozen=True)
class CreateInvitationOutput:
    invite: Invite | None = None
    token: str | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None
