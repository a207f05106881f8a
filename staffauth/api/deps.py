import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from staffauth.adapters.auth.crypto import Argon2AuthAdapter
from staffauth.adapters.clock import SystemClock
from staffauth.adapters.dev_email import DevEmailAdapter
from staffauth.adapters.sqlite.repos import (
    SQLiteInviteRepo,
    SQLiteSessionRepo,
    SQLiteSettingsRepo,
    SQLiteUserRepo,
)
from staffauth.components.auth import VerifySessionInput, run_verify_session
from staffauth.components.invitation import InvitationPolicy
from staffauth.components.mass_reset import MassResetPolicy
from staffauth.components.password_reset import ResetPolicy
from staffauth.components.reset_token import SignedResetTokenCodec
from staffauth.components.setup import SetupPolicy
from staffauth.core.services.mail import MailSettings
from staffauth.core.services.settings_cache import SettingsCache
from staffauth.domain.entities import User
from staffauth.rules.loader import load_rules
from staffauth.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("STAFFAUTH_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "staffauth.db")
        self.rules_path = Path(
            os.environ.get("STAFFAUTH_RULES_PATH", str(self.base_dir / "auth_rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


def get_invite_repo(settings: Settings = Depends(get_settings)) -> SQLiteInviteRepo:
    return SQLiteInviteRepo(settings.db_path)


def get_session_repo(settings: Settings = Depends(get_settings)) -> SQLiteSessionRepo:
    return SQLiteSessionRepo(settings.db_path)


# --- Settings cache (one per database, loaded once) ---
_settings_caches: dict[str, SettingsCache] = {}
_settings_caches_lock = threading.Lock()


def load_settings_cache(db_path: str) -> SettingsCache:
    with _settings_caches_lock:
        cache = _settings_caches.get(db_path)
        if cache is None:
            cache = SettingsCache.load(SQLiteSettingsRepo(db_path))
            _settings_caches[db_path] = cache
        return cache


def get_settings_cache(settings: Settings = Depends(get_settings)) -> SettingsCache:
    return load_settings_cache(settings.db_path)


# --- Adapters ---
def get_auth_adapter() -> Argon2AuthAdapter:
    return Argon2AuthAdapter()


_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


_mailer_instance: DevEmailAdapter | None = None


def get_mailer() -> DevEmailAdapter:
    """Get mailer singleton. Logs mail instead of sending it."""
    global _mailer_instance
    if _mailer_instance is None:
        _mailer_instance = DevEmailAdapter()
    return _mailer_instance


_codec_instance = SignedResetTokenCodec()


def get_reset_codec() -> SignedResetTokenCodec:
    return _codec_instance


# --- Policies derived from rules ---
def get_mail_settings(rules: Rules = Depends(get_rules)) -> MailSettings:
    return MailSettings(
        from_address=rules.mail.from_address,
        from_name=rules.mail.from_name,
        admin_url=rules.site.admin_url,
        reset_url_template=rules.password_reset.reset_url_template,
    )


def get_setup_policy(rules: Rules = Depends(get_rules)) -> SetupPolicy:
    return SetupPolicy(
        min_password_length=rules.passwords.min_length,
        session_ttl_minutes=rules.sessions.ttl_minutes,
        default_site_title=rules.site.default_title,
    )


def get_invitation_policy(rules: Rules = Depends(get_rules)) -> InvitationPolicy:
    return InvitationPolicy(
        min_password_length=rules.passwords.min_length,
        session_ttl_minutes=rules.sessions.ttl_minutes,
    )


def get_reset_policy(rules: Rules = Depends(get_rules)) -> ResetPolicy:
    return ResetPolicy(
        token_ttl_minutes=rules.password_reset.token_ttl_minutes,
        min_password_length=rules.passwords.min_length,
    )


def get_mass_reset_policy(rules: Rules = Depends(get_rules)) -> MassResetPolicy:
    return MassResetPolicy(
        notify_roles=frozenset(rules.mass_reset.notify_roles),
        token_ttl_minutes=rules.password_reset.token_ttl_minutes,
    )


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/session", auto_error=False)


def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    clock: SystemClock = Depends(get_clock),
) -> User:
    # 1. Try Cookie first (HttpOnly), then the Authorization header
    cookie_token = request.cookies.get(rules.sessions.cookie_name)
    if cookie_token:
        token = cookie_token

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Look up the server-side session
    result = run_verify_session(
        VerifySessionInput(token=token), user_repo, auth_adapter, session_repo, clock
    )
    if not result.success or result.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error or "Invalid session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return result.user
