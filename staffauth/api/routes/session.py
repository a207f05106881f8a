from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from staffauth.adapters.auth.crypto import Argon2AuthAdapter
from staffauth.adapters.clock import SystemClock
from staffauth.adapters.sqlite.repos import SQLiteSessionRepo, SQLiteUserRepo
from staffauth.api.auth_utils import clear_session_cookie, set_session_cookie
from staffauth.api.deps import (
    get_auth_adapter,
    get_clock,
    get_current_user,
    get_rules,
    get_session_repo,
    get_user_repo,
    oauth2_scheme,
)
from staffauth.api.errors import raise_for_error
from staffauth.api.schemas import LoginRequest, MessageResponse, UserResponse
from staffauth.components.auth import (
    CreateSessionInput,
    LoginInput,
    LogoutInput,
    run_create_session,
    run_login,
    run_logout,
)
from staffauth.domain.entities import User
from staffauth.rules.models import Rules

router = APIRouter()


@router.post("/session", response_model=UserResponse)
def login(
    body: LoginRequest,
    response: Response,
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    clock: SystemClock = Depends(get_clock),
) -> UserResponse:
    """Authenticate and set the session cookie."""
    result = run_login(LoginInput(email=body.email, password=body.password), user_repo, auth_adapter)
    if not result.success or result.user is None:
        raise_for_error(result.error_code, result.error)

    session = run_create_session(
        CreateSessionInput(user=result.user, ttl_minutes=rules.sessions.ttl_minutes),
        auth_adapter,
        session_repo,
        clock,
    )
    if not session.success or session.token_raw is None:
        raise_for_error(session.error_code, session.error)

    set_session_cookie(response, session.token_raw, rules)
    return UserResponse.from_user(result.user)


@router.delete("/session", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    rules: Rules = Depends(get_rules),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
) -> MessageResponse:
    """Destroy the current session and clear the cookie."""
    token = request.cookies.get(rules.sessions.cookie_name) or token
    run_logout(LogoutInput(token=token or ""), auth_adapter, session_repo)
    clear_session_cookie(response, rules)
    return MessageResponse(message="Signed out")


@router.get("/users/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get current user info."""
    return UserResponse.from_user(current_user)
