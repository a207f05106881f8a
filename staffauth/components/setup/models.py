"""Setup component data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from staffauth.domain.errors import ErrorCode, ValidationError

if TYPE_CHECKING:
    from staffauth.core.ports.email import EmailResult
    from staffauth.domain.entities import Session, User


@dataclass(frozen=True)
class SetupPolicy:
    """Rule values the setup flow needs."""

    min_password_length: int = 10
    session_ttl_minutes: int = 24 * 60
    default_site_title: str = "My Site"


@dataclass(frozen=True)
class CompleteSetupInput:
    name: str
    email: str
    password: str
    site_title: str | None = None


@dataclass(frozen=True)
class UpdateSetupInput:
    actor: User
    name: str
    email: str
    password: str
    site_title: str | None = None


@dataclass(frozen=True)
class SetupStatusOutput:
    configured: bool


@dataclass(frozen=True)
class SetupOutput:
    """Result of completing or updating setup.

    On success carries the owner plus the session issued for them.
    """

    user: User | None = None
    session: Session | None = None
    token_raw: str | None = None
    mail: EmailResult | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None
    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def failed(
        cls, code: ErrorCode, message: str, errors: tuple[ValidationError, ...] = ()
    ) -> SetupOutput:
        return cls(success=False, error=message, error_code=code, errors=errors)
