"""Reset token data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenStatus(Enum):
    VALID = "valid"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    VERIFIER_MISMATCH = "verifier_mismatch"


@dataclass(frozen=True)
class TokenClaims:
    """What a reset token says about itself once its seal checks out."""

    email: str
    expires_at_ms: int


@dataclass(frozen=True)
class IssueTokenInput:
    email: str
    expires_at_ms: int
    install_secret: str
    verifier: str


@dataclass(frozen=True)
class ExtractTokenInput:
    token: str
    install_secret: str


@dataclass(frozen=True)
class VerifyTokenInput:
    token: str
    install_secret: str
    verifier: str
    now_ms: int


@dataclass(frozen=True)
class IssueTokenOutput:
    token: str


@dataclass(frozen=True)
class TokenCheckOutput:
    """Result of extracting or verifying a token.

    MALFORMED means the token was never a genuine token for this install.
    EXPIRED and VERIFIER_MISMATCH are both stale: the token was genuine
    but has lapsed or been superseded by a password change.
    """

    status: TokenStatus
    claims: TokenClaims | None = None

    @property
    def valid(self) -> bool:
        return self.status is TokenStatus.VALID

    @property
    def malformed(self) -> bool:
        return self.status is TokenStatus.MALFORMED

    @property
    def stale(self) -> bool:
        return self.status in (TokenStatus.EXPIRED, TokenStatus.VERIFIER_MISMATCH)

    @classmethod
    def rejected(cls, status: TokenStatus, claims: TokenClaims | None = None) -> TokenCheckOutput:
        return cls(status=status, claims=claims)
