"""
Reset token component - stateless, verifier-bound password reset tokens.
"""

from .component import (
    SignedResetTokenCodec,
    run,
    run_extract,
    run_issue,
    run_verify,
)
from .models import (
    ExtractTokenInput,
    IssueTokenInput,
    IssueTokenOutput,
    TokenCheckOutput,
    TokenClaims,
    TokenStatus,
    VerifyTokenInput,
)
from .ports import ResetTokenCodecPort

__all__ = [
    # Entry points
    "run",
    "run_extract",
    "run_issue",
    "run_verify",
    # Codec
    "SignedResetTokenCodec",
    # Models
    "ExtractTokenInput",
    "IssueTokenInput",
    "IssueTokenOutput",
    "TokenCheckOutput",
    "TokenClaims",
    "TokenStatus",
    "VerifyTokenInput",
    # Ports
    "ResetTokenCodecPort",
]
