"""
Setup component - first-run owner creation and owner setup updates.
"""

from .component import (
    run,
    run_complete_setup,
    run_is_configured,
    run_update_setup,
)
from .models import (
    CompleteSetupInput,
    SetupOutput,
    SetupPolicy,
    SetupStatusOutput,
    UpdateSetupInput,
)
from .ports import AuthAdapterPort, SettingsCachePort, UserRepoPort

__all__ = [
    # Entry points
    "run",
    "run_complete_setup",
    "run_is_configured",
    "run_update_setup",
    # Models
    "CompleteSetupInput",
    "SetupOutput",
    "SetupPolicy",
    "SetupStatusOutput",
    "UpdateSetupInput",
    # Ports
    "AuthAdapterPort",
    "SettingsCachePort",
    "UserRepoPort",
]
