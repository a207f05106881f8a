"""
Authentication routes: setup, invitations and password resets.
"""

from fastapi import APIRouter, Depends, Response, status

from staffauth.adapters.auth.crypto import Argon2AuthAdapter
from staffauth.adapters.clock import SystemClock
from staffauth.adapters.dev_email import DevEmailAdapter
from staffauth.adapters.sqlite.repos import SQLiteInviteRepo, SQLiteSessionRepo, SQLiteUserRepo
from staffauth.api.auth_utils import set_session_cookie
from staffauth.api.deps import (
    get_auth_adapter,
    get_clock,
    get_current_user,
    get_invitation_policy,
    get_invite_repo,
    get_mail_settings,
    get_mailer,
    get_mass_reset_policy,
    get_reset_codec,
    get_reset_policy,
    get_rules,
    get_session_repo,
    get_settings_cache,
    get_setup_policy,
    get_user_repo,
)
from staffauth.api.errors import raise_for_error
from staffauth.api.schemas import (
    AcceptInvitationRequest,
    InvitationStatusResponse,
    MessageResponse,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    ResetAllResponse,
    SetupRequest,
    SetupStatusResponse,
    UserResponse,
)
from staffauth.components.invitation import (
    AcceptInvitationInput,
    CheckInvitationInput,
    InvitationPolicy,
    run_accept,
    run_check,
)
from staffauth.components.mass_reset import MassResetPolicy, ResetAllInput, run_reset_all
from staffauth.components.password_reset import (
    ConfirmResetInput,
    RequestResetInput,
    ResetPolicy,
    run_confirm,
    run_request,
)
from staffauth.components.reset_token import SignedResetTokenCodec
from staffauth.components.setup import (
    CompleteSetupInput,
    SetupPolicy,
    UpdateSetupInput,
    run_complete_setup,
    run_is_configured,
    run_update_setup,
)
from staffauth.core.services.mail import MailSettings
from staffauth.core.services.settings_cache import SettingsCache
from staffauth.domain.entities import User
from staffauth.rules.models import Rules

router = APIRouter()


# --- Setup ---


@router.get("/setup", response_model=SetupStatusResponse)
def is_setup(user_repo: SQLiteUserRepo = Depends(get_user_repo)) -> SetupStatusResponse:
    return SetupStatusResponse(configured=run_is_configured(user_repo).configured)


@router.post("/setup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def setup(
    body: SetupRequest,
    response: Response,
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    settings_cache: SettingsCache = Depends(get_settings_cache),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    mailer: DevEmailAdapter = Depends(get_mailer),
    mail_settings: MailSettings = Depends(get_mail_settings),
    policy: SetupPolicy = Depends(get_setup_policy),
    clock: SystemClock = Depends(get_clock),
) -> UserResponse:
    """Create the owner account on a fresh install and sign them in."""
    result = run_complete_setup(
        CompleteSetupInput(
            name=body.name,
            email=body.email,
            password=body.password,
            site_title=body.blog_title,
        ),
        user_repo,
        auth_adapter,
        session_repo,
        settings_cache,
        mailer,
        mail_settings,
        policy,
        clock,
    )
    if not result.success or result.user is None:
        raise_for_error(result.error_code, result.error, result.errors)

    if result.token_raw:
        set_session_cookie(response, result.token_raw, rules)
    return UserResponse.from_user(result.user)


@router.put("/setup", response_model=UserResponse)
def update_setup(
    body: SetupRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    settings_cache: SettingsCache = Depends(get_settings_cache),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    policy: SetupPolicy = Depends(get_setup_policy),
    clock: SystemClock = Depends(get_clock),
) -> UserResponse:
    """Owner-only: change the owner's details and the site title."""
    result = run_update_setup(
        UpdateSetupInput(
            actor=current_user,
            name=body.name,
            email=body.email,
            password=body.password,
            site_title=body.blog_title,
        ),
        user_repo,
        auth_adapter,
        session_repo,
        settings_cache,
        policy,
        clock,
    )
    if not result.success or result.user is None:
        raise_for_error(result.error_code, result.error, result.errors)

    if result.token_raw:
        set_session_cookie(response, result.token_raw, rules)
    return UserResponse.from_user(result.user)


# --- Invitations ---


@router.get("/invitation", response_model=InvitationStatusResponse)
def check_invitation(
    email: str = "",
    invite_repo: SQLiteInviteRepo = Depends(get_invite_repo),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    clock: SystemClock = Depends(get_clock),
) -> InvitationStatusResponse:
    result = run_check(CheckInvitationInput(email=email), invite_repo, user_repo, clock)
    if not result.success:
        raise_for_error(result.error_code, result.error, result.errors)
    return InvitationStatusResponse(is_invited=result.is_invited, invited_by=result.invited_by)


@router.post("/invitation", response_model=UserResponse)
def accept_invitation(
    body: AcceptInvitationRequest,
    response: Response,
    rules: Rules = Depends(get_rules),
    invite_repo: SQLiteInviteRepo = Depends(get_invite_repo),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    policy: InvitationPolicy = Depends(get_invitation_policy),
    clock: SystemClock = Depends(get_clock),
) -> UserResponse:
    result = run_accept(
        AcceptInvitationInput(
            token=body.token, email=body.email, password=body.password, name=body.name
        ),
        invite_repo,
        user_repo,
        auth_adapter,
        session_repo,
        policy,
        clock,
    )
    if not result.success or result.user is None:
        raise_for_error(result.error_code, result.error, result.errors)

    if result.token_raw:
        set_session_cookie(response, result.token_raw, rules)
    return UserResponse.from_user(result.user)


# --- Password reset ---


@router.post("/passwordreset", response_model=MessageResponse)
def request_password_reset(
    body: PasswordResetRequest,
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    settings_cache: SettingsCache = Depends(get_settings_cache),
    codec: SignedResetTokenCodec = Depends(get_reset_codec),
    mailer: DevEmailAdapter = Depends(get_mailer),
    mail_settings: MailSettings = Depends(get_mail_settings),
    policy: ResetPolicy = Depends(get_reset_policy),
    clock: SystemClock = Depends(get_clock),
) -> MessageResponse:
    """Always answers the same way, whether or not the address has an account."""
    run_request(
        RequestResetInput(email=body.email),
        user_repo,
        codec,
        settings_cache.install_secret,
        mailer,
        mail_settings,
        policy,
        clock,
    )
    return MessageResponse(message="Check your email for instructions to reset your password.")


@router.put("/passwordreset", response_model=UserResponse)
def confirm_password_reset(
    body: PasswordResetConfirmRequest,
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    settings_cache: SettingsCache = Depends(get_settings_cache),
    codec: SignedResetTokenCodec = Depends(get_reset_codec),
    auth_adapter: Argon2AuthAdapter = Depends(get_auth_adapter),
    policy: ResetPolicy = Depends(get_reset_policy),
    clock: SystemClock = Depends(get_clock),
) -> UserResponse:
    result = run_confirm(
        ConfirmResetInput(
            token=body.token,
            new_password=body.new_password,
            confirm_password=body.confirm_password,
        ),
        user_repo,
        auth_adapter,
        codec,
        settings_cache.install_secret,
        policy,
        clock,
    )
    if not result.success or result.user is None:
        raise_for_error(result.error_code, result.error, result.errors)
    return UserResponse.from_user(result.user)


@router.post("/reset_all_passwords", response_model=ResetAllResponse)
def reset_all_passwords(
    current_user: User = Depends(get_current_user),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    settings_cache: SettingsCache = Depends(get_settings_cache),
    codec: SignedResetTokenCodec = Depends(get_reset_codec),
    mailer: DevEmailAdapter = Depends(get_mailer),
    mail_settings: MailSettings = Depends(get_mail_settings),
    policy: MassResetPolicy = Depends(get_mass_reset_policy),
    clock: SystemClock = Depends(get_clock),
) -> ResetAllResponse:
    """Break glass: lock every account and mail reset links to privileged staff."""
    result = run_reset_all(
        ResetAllInput(actor=current_user),
        user_repo,
        codec,
        settings_cache.install_secret,
        mailer,
        mail_settings,
        policy,
        clock,
    )
    if not result.success:
        raise_for_error(result.error_code, result.error)
    return ResetAllResponse(
        locked=result.locked_count,
        sessions_revoked=result.sessions_revoked,
        notified=result.notified,
        notify_failed=result.notify_failed,
    )
