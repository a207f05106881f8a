"""
Password reset component - request and confirm individual password resets.
"""

from .component import (
    issue_reset_token,
    run,
    run_confirm,
    run_request,
    to_epoch_ms,
)
from .models import (
    ConfirmResetInput,
    ConfirmResetOutput,
    IssuedResetToken,
    RequestResetInput,
    RequestResetOutput,
    ResetPolicy,
)
from .ports import AuthAdapterPort, UserRepoPort

__all__ = [
    # Entry points
    "run",
    "run_confirm",
    "run_request",
    # Helpers
    "issue_reset_token",
    "to_epoch_ms",
    # Models
    "ConfirmResetInput",
    "ConfirmResetOutput",
    "IssuedResetToken",
    "RequestResetInput",
    "RequestResetOutput",
    "ResetPolicy",
    # Ports
    "AuthAdapterPort",
    "UserRepoPort",
]
