"""Setup component implementation.

Moves the site from unconfigured to configured by creating the single
owner account, and lets that owner revise the same details later.
"""

from __future__ import annotations

import logging

from staffauth.components.auth import CreateSessionInput, run_create_session
from staffauth.core.services.mail import MailSettings, build_welcome_email, send_best_effort
from staffauth.domain.entities import SETTING_SITE_TITLE, User
from staffauth.domain.errors import (
    DuplicateEmailError,
    ErrorCode,
    OwnerExistsError,
    ValidationError,
)
from staffauth.domain.validation import (
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)

from .models import (
    CompleteSetupInput,
    SetupOutput,
    SetupPolicy,
    SetupStatusOutput,
    UpdateSetupInput,
)
from .ports import (
    AuthAdapterPort,
    EmailPort,
    SessionStorePort,
    SettingsCachePort,
    TimePort,
    UserRepoPort,
)

logger = logging.getLogger(__name__)


def _validate(
    name: str, email: str, password: str, policy: SetupPolicy
) -> tuple[ValidationError, ...]:
    return (
        validate_name(name)
        + validate_email(email)
        + validate_password(password, email, policy.min_password_length)
    )


def _issue_session(
    user: User,
    policy: SetupPolicy,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    time: TimePort,
) -> SetupOutput:
    auth = run_create_session(
        CreateSessionInput(user=user, ttl_minutes=policy.session_ttl_minutes),
        auth_adapter,
        session_store,
        time,
    )
    return SetupOutput(
        user=user,
        session=auth.session,
        token_raw=auth.token_raw,
        success=True,
    )


def run_is_configured(user_repo: UserRepoPort) -> SetupStatusOutput:
    return SetupStatusOutput(configured=user_repo.get_owner() is not None)


def run_complete_setup(
    inp: CompleteSetupInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    settings: SettingsCachePort,
    mailer: EmailPort,
    mail_settings: MailSettings,
    policy: SetupPolicy,
    time: TimePort,
) -> SetupOutput:
    """Create the owner, store the site title and sign the owner in.

    Fails with ALREADY_CONFIGURED, without mutating anything, once an
    owner exists. The welcome mail is best-effort.
    """
    # 1. Gate on the configured state
    if user_repo.get_owner() is not None:
        return SetupOutput.failed(ErrorCode.ALREADY_CONFIGURED, "Setup has already been completed")

    # 2. Validate
    errors = _validate(inp.name, inp.email, inp.password, policy)
    if errors:
        return SetupOutput.failed(ErrorCode.VALIDATION, errors[0].message, errors)

    # 3. Create owner and title together
    now = time.now_utc()
    owner = User(
        email=normalize_email(inp.email),
        display_name=inp.name.strip(),
        password_hash=auth_adapter.hash_password(inp.password),
        roles=["owner"],
        status="active",
        created_at=now,
        updated_at=now,
    )
    site_title = (inp.site_title or "").strip() or policy.default_site_title

    try:
        user_repo.create_owner(owner, {SETTING_SITE_TITLE: site_title})
    except OwnerExistsError:
        # Lost a race against a concurrent setup
        return SetupOutput.failed(ErrorCode.ALREADY_CONFIGURED, "Setup has already been completed")
    except DuplicateEmailError:
        return SetupOutput.failed(ErrorCode.CONFLICT, "A user with this email already exists")

    settings.invalidate_settings()
    logger.info("Setup completed, owner %s created", owner.id)

    # 4. Auto-login
    result = _issue_session(owner, policy, auth_adapter, session_store, time)

    # 5. Welcome mail
    mail = send_best_effort(
        mailer,
        build_welcome_email(mail_settings, owner.email, owner.display_name, site_title),
    )
    return SetupOutput(
        user=result.user,
        session=result.session,
        token_raw=result.token_raw,
        mail=mail,
        success=True,
    )


def run_update_setup(
    inp: UpdateSetupInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    settings: SettingsCachePort,
    policy: SetupPolicy,
    time: TimePort,
) -> SetupOutput:
    """Rewrite the owner's name, email, password and the site title.

    The password change revokes the owner's other sessions; a fresh one is
    issued for the caller.
    """
    owner = user_repo.get_owner()
    if owner is None:
        return SetupOutput.failed(ErrorCode.NOT_CONFIGURED, "Setup has not been completed")

    if inp.actor.id != owner.id:
        return SetupOutput.failed(ErrorCode.FORBIDDEN, "Only the owner can update setup")

    errors = _validate(inp.name, inp.email, inp.password, policy)
    if errors:
        return SetupOutput.failed(ErrorCode.VALIDATION, errors[0].message, errors)

    email = normalize_email(inp.email)
    existing = user_repo.get_by_email(email)
    if existing is not None and existing.id != owner.id:
        return SetupOutput.failed(ErrorCode.CONFLICT, "A user with this email already exists")

    updated = owner.model_copy(
        update={
            "email": email,
            "display_name": inp.name.strip(),
            "password_hash": auth_adapter.hash_password(inp.password),
            "updated_at": time.now_utc(),
        }
    )
    new_settings: dict[str, str] = {}
    if inp.site_title and inp.site_title.strip():
        new_settings[SETTING_SITE_TITLE] = inp.site_title.strip()

    try:
        user_repo.update_owner(updated, new_settings, revoke_sessions=True)
    except DuplicateEmailError:
        return SetupOutput.failed(ErrorCode.CONFLICT, "A user with this email already exists")

    settings.invalidate_settings()
    logger.info("Setup updated by owner %s", owner.id)

    return _issue_session(updated, policy, auth_adapter, session_store, time)


def run(
    inp: CompleteSetupInput | UpdateSetupInput,
    *,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    settings: SettingsCachePort,
    policy: SetupPolicy,
    time: TimePort,
    mailer: EmailPort | None = None,  # Only needed for complete
    mail_settings: MailSettings | None = None,  # Only needed for complete
) -> SetupOutput:
    if isinstance(inp, CompleteSetupInput):
        assert mailer and mail_settings
        return run_complete_setup(
            inp,
            user_repo,
            auth_adapter,
            session_store,
            settings,
            mailer,
            mail_settings,
            policy,
            time,
        )

    elif isinstance(inp, UpdateSetupInput):
        return run_update_setup(
            inp, user_repo, auth_adapter, session_store, settings, policy, time
        )

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
