"""
Mass reset component - emergency lock of every account.
"""

from .component import run, run_reset_all
from .models import MassResetPolicy, ResetAllInput, ResetAllOutput
from .ports import UserRepoPort

__all__ = [
    "run",
    "run_reset_all",
    "MassResetPolicy",
    "ResetAllInput",
    "ResetAllOutput",
    "UserRepoPort",
]
