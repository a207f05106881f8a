"""
Invitation component - check, accept and create staff invitations.
"""

from .component import (
    run,
    run_accept,
    run_check,
    run_create,
)
from .models import (
    AcceptInvitationInput,
    AcceptInvitationOutput,
    CheckInvitationInput,
    CreateInvitationInput,
    CreateInvitationOutput,
    InvitationPolicy,
    InvitationStatusOutput,
)
from .ports import AuthAdapterPort, InviteRepoPort, UserRepoPort

__all__ = [
    # Entry points
    "run",
    "run_accept",
    "run_check",
    "run_create",
    # Input models
    "AcceptInvitationInput",
    "CheckInvitationInput",
    "CreateInvitationInput",
    "InvitationPolicy",
    # Output models
    "AcceptInvitationOutput",
    "CreateInvitationOutput",
    "InvitationStatusOutput",
    # Ports
    "AuthAdapterPort",
    "InviteRepoPort",
    "UserRepoPort",
]
