from __future__ import annotations

from dataclasses import dataclass, field

from staffauth.domain.entities import User
from staffauth.domain.errors import ErrorCode


@dataclass(frozen=True)
class MassResetPolicy:
    notify_roles: frozenset[str] = field(default_factory=lambda: frozenset({"owner", "admin"}))
    token_ttl_minutes: int = 60


@dataclass(frozen=True)
class ResetAllInput:
    """Who is asking. `internal` marks operator tooling running on the host."""

    actor: User | None = None
    internal: bool = False


@dataclass(frozen=True)
class ResetAllOutput:
    locked_count: int = 0
    sessions_revoked: int = 0
    notified: int = 0
    notify_failed: int = 0
    success: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failed(cls, code: ErrorCode, message: str) -> ResetAllOutput:
        return cls(success=False, error=message, error_code=code)
