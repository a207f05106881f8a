import logging
from datetime import timedelta
from uuid import uuid4

from staffauth.domain.entities import Session
from staffauth.domain.validation import normalize_email

from .models import AuthOutput, CreateSessionInput, LoginInput, LogoutInput, VerifySessionInput
from .ports import AuthAdapterPort, SessionStorePort, TimePort, UserRepoPort

logger = logging.getLogger(__name__)


def run_login(
    inp: LoginInput, user_repo: UserRepoPort, auth_adapter: AuthAdapterPort
) -> AuthOutput:
    user = user_repo.get_by_email(normalize_email(inp.email))
    if not user:
        return AuthOutput.denied("Invalid credentials")

    if not auth_adapter.verify_password(inp.password, user.password_hash):
        return AuthOutput.denied("Invalid credentials")

    if user.status != "active":
        logger.info("Login refused for %s account %s", user.status, user.id)
        return AuthOutput.denied("User account is locked or inactive")

    return AuthOutput(user=user, success=True)


def run_create_session(
    inp: CreateSessionInput,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    time: TimePort,
) -> AuthOutput:
    token = auth_adapter.create_token()
    now = time.now_utc()

    session = Session(
        id=str(uuid4()),
        user_id=inp.user.id,
        token_hash=auth_adapter.hash_token(token),
        expires_at=now + timedelta(minutes=inp.ttl_minutes),
        created_at=now,
    )
    if not session_store.save(session):
        # The store refuses sessions for users who are not active
        return AuthOutput.denied("User account is locked or inactive")

    return AuthOutput(user=inp.user, session=session, token_raw=token, success=True)


def run_verify_session(
    inp: VerifySessionInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    time: TimePort,
) -> AuthOutput:
    if not inp.token:
        return AuthOutput.denied("Session not found")

    token_hash = auth_adapter.hash_token(inp.token)
    session = session_store.get(token_hash)
    if not session:
        return AuthOutput.denied("Session not found")

    if session.expires_at < time.now_utc():
        session_store.delete(token_hash)
        return AuthOutput.denied("Session expired")

    user = user_repo.get_by_id(session.user_id)
    if not user:
        return AuthOutput.denied("User not found")

    if user.status != "active":
        return AuthOutput.denied("User account is locked or inactive")

    return AuthOutput(user=user, session=session, success=True)


def run_logout(
    inp: LogoutInput, auth_adapter: AuthAdapterPort, session_store: SessionStorePort
) -> AuthOutput:
    if inp.token:
        session_store.delete(auth_adapter.hash_token(inp.token))
    return AuthOutput(success=True)


def run(
    inp: LoginInput | CreateSessionInput | VerifySessionInput | LogoutInput,
    *,
    user_repo: UserRepoPort | None = None,
    auth_adapter: AuthAdapterPort | None = None,
    session_store: SessionStorePort | None = None,
    time: TimePort | None = None,
) -> AuthOutput:
    if isinstance(inp, LoginInput):
        assert user_repo and auth_adapter
        return run_login(inp, user_repo, auth_adapter)

    elif isinstance(inp, CreateSessionInput):
        assert auth_adapter and session_store and time
        return run_create_session(inp, auth_adapter, session_store, time)

    elif isinstance(inp, VerifySessionInput):
        assert user_repo and auth_adapter and session_store and time
        return run_verify_session(inp, user_repo, auth_adapter, session_store, time)

    elif isinstance(inp, LogoutInput):
        assert auth_adapter and session_store
        return run_logout(inp, auth_adapter, session_store)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
