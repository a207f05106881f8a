"""
Auth component - login and server-side sessions.
"""

from .component import (
    run,
    run_create_session,
    run_login,
    run_logout,
    run_verify_session,
)
from .models import (
    AuthOutput,
    CreateSessionInput,
    LoginInput,
    LogoutInput,
    VerifySessionInput,
)
from .ports import AuthAdapterPort, SessionStorePort, TimePort, UserRepoPort

__all__ = [
    "run",
    "run_create_session",
    "run_login",
    "run_logout",
    "run_verify_session",
    "AuthOutput",
    "CreateSessionInput",
    "LoginInput",
    "LogoutInput",
    "VerifySessionInput",
    "AuthAdapterPort",
    "SessionStorePort",
    "TimePort",
    "UserRepoPort",
]
