from __future__ import annotations

from dataclasses import dataclass

from staffauth.core.ports.email import EmailResult
from staffauth.domain.entities import User
from staffauth.domain.errors import ErrorCode, ValidationError


@dataclass(frozen=True)
class ResetPolicy:
    token_ttl_minutes: int = 60
    min_password_length: int = 10


@dataclass(frozen=True)
class RequestResetInput:
    email: str


@dataclass(frozen=True)
class ConfirmResetInput:
    token: str
    new_password: str
    confirm_password: str


@dataclass(frozen=True)
class RequestResetOutput:
    """Always successful. Carries nothing that depends on the account existing."""

    success: bool = True


@dataclass(frozen=True)
class ConfirmResetOutput:
    user: User | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None
    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def failed(
        cls, code: ErrorCode, message: str, errors: tuple[ValidationError, ...] = ()
    ) -> ConfirmResetOutput:
        return cls(success=False, error=message, error_code=code, errors=errors)


@dataclass(frozen=True)
class IssuedResetToken:
    token: str
    expires_at_ms: int
    mail: EmailResult | None = None
