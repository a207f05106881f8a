from dataclasses import dataclass

from staffauth.domain.entities import Session, User
from staffauth.domain.errors import ErrorCode


@dataclass
class LoginInput:
    email: str
    password: str


@dataclass
class CreateSessionInput:
    user: User
    ttl_minutes: int = 24 * 60


@dataclass
class VerifySessionInput:
    token: str


@dataclass
class LogoutInput:
    token: str


@dataclass
class AuthOutput:
    user: User | None = None
    session: Session | None = None
    token_raw: str | None = None
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def denied(cls, error: str) -> "AuthOutput":
        return cls(success=False, error=error, error_code=ErrorCode.UNAUTHORIZED)
