"""Password reset component implementation.

Requests always look the same to the caller. Confirmation tells a token
that was never genuine (UNAUTHORIZED) apart from one that was genuine but
has expired or been superseded by a password change (INVALID_OR_EXPIRED).
"""

from __future__ import annotations

import logging
from datetime import datetime

from staffauth.core.services.mail import (
    MailSettings,
    build_reset_password_email,
    send_best_effort,
)
from staffauth.domain.entities import User
from staffauth.domain.errors import ErrorCode, ValidationError
from staffauth.domain.validation import is_valid_email, normalize_email, validate_password

from .models import (
    ConfirmResetInput,
    ConfirmResetOutput,
    IssuedResetToken,
    RequestResetInput,
    RequestResetOutput,
    ResetPolicy,
)
from .ports import AuthAdapterPort, EmailPort, ResetTokenCodecPort, TimePort, UserRepoPort

logger = logging.getLogger(__name__)

# Stand-in verifier so unknown addresses cost the same signing work
_PLACEHOLDER_VERIFIER = "$argon2id$v=19$m=65536,t=3,p=4$placeholder$placeholder"

_STALE = "Password reset link has expired or has already been used"


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def issue_reset_token(
    user: User,
    codec: ResetTokenCodecPort,
    install_secret: str,
    now: datetime,
    ttl_minutes: int,
    mailer: EmailPort | None = None,
    mail_settings: MailSettings | None = None,
) -> IssuedResetToken:
    """Sign a token against the user's current verifier and, given a mailer, mail it."""
    expires_at_ms = to_epoch_ms(now) + ttl_minutes * 60_000
    token = codec.issue(user.email, expires_at_ms, install_secret, user.password_hash)

    mail = None
    if mailer is not None and mail_settings is not None:
        mail = send_best_effort(
            mailer,
            build_reset_password_email(
                mail_settings, user.email, user.display_name, token, ttl_minutes
            ),
        )
    return IssuedResetToken(token=token, expires_at_ms=expires_at_ms, mail=mail)


def run_request(
    inp: RequestResetInput,
    user_repo: UserRepoPort,
    codec: ResetTokenCodecPort,
    install_secret: str,
    mailer: EmailPort,
    mail_settings: MailSettings,
    policy: ResetPolicy,
    time: TimePort,
) -> RequestResetOutput:
    email = normalize_email(inp.email)
    user = user_repo.get_by_email(email) if is_valid_email(email) else None
    now = time.now_utc()

    # Locked accounts may reset; that is how they leave a mass-reset lock
    if user is None or user.status == "inactive":
        codec.issue(
            email or "-",
            to_epoch_ms(now) + policy.token_ttl_minutes * 60_000,
            install_secret,
            _PLACEHOLDER_VERIFIER,
        )
        logger.info("Password reset requested for an unknown or inactive address")
        return RequestResetOutput()

    issue_reset_token(
        user,
        codec,
        install_secret,
        now,
        policy.token_ttl_minutes,
        mailer=mailer,
        mail_settings=mail_settings,
    )
    logger.info("Password reset token issued for user %s", user.id)
    return RequestResetOutput()


def run_confirm(
    inp: ConfirmResetInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    codec: ResetTokenCodecPort,
    install_secret: str,
    policy: ResetPolicy,
    time: TimePort,
) -> ConfirmResetOutput:
    # 1. Passwords must agree before the token is looked at
    if inp.new_password != inp.confirm_password:
        error = ValidationError("mismatch", "Passwords do not match", "confirm_password")
        return ConfirmResetOutput.failed(ErrorCode.VALIDATION, error.message, (error,))

    # 2. Unseal
    extracted = codec.extract(inp.token, install_secret)
    if extracted.malformed or extracted.claims is None:
        logger.warning("Rejected malformed password reset token")
        return ConfirmResetOutput.failed(ErrorCode.UNAUTHORIZED, "Invalid password reset link")

    user = user_repo.get_by_email(extracted.claims.email)
    if user is None or user.status == "inactive":
        return ConfirmResetOutput.failed(ErrorCode.INVALID_OR_EXPIRED, _STALE)

    # 3. Check expiry and the verifier binding against the stored verifier
    now = time.now_utc()
    checked = codec.verify(inp.token, install_secret, user.password_hash, to_epoch_ms(now))
    if checked.malformed:
        return ConfirmResetOutput.failed(ErrorCode.UNAUTHORIZED, "Invalid password reset link")
    if not checked.valid:
        logger.warning("Rejected %s password reset token for user %s", checked.status.value, user.id)
        return ConfirmResetOutput.failed(ErrorCode.INVALID_OR_EXPIRED, _STALE)

    # 4. Policy
    errors = validate_password(inp.new_password, user.email, policy.min_password_length)
    if errors:
        return ConfirmResetOutput.failed(ErrorCode.VALIDATION, errors[0].message, errors)

    # 5. Swap the verifier only if nobody changed it since step 3
    updated = user_repo.change_password(
        user.id, user.password_hash, auth_adapter.hash_password(inp.new_password), now
    )
    if updated is None:
        return ConfirmResetOutput.failed(ErrorCode.INVALID_OR_EXPIRED, _STALE)

    logger.info("Password reset completed for user %s; sessions revoked", user.id)
    return ConfirmResetOutput(user=updated, success=True)


def run(
    inp: RequestResetInput | ConfirmResetInput,
    *,
    user_repo: UserRepoPort,
    codec: ResetTokenCodecPort,
    install_secret: str,
    policy: ResetPolicy,
    time: TimePort,
    auth_adapter: AuthAdapterPort | None = None,  # Only needed for confirm
    mailer: EmailPort | None = None,  # Only needed for request
    mail_settings: MailSettings | None = None,  # Only needed for request
) -> RequestResetOutput | ConfirmResetOutput:
    if isinstance(inp, RequestResetInput):
        assert mailer and mail_settings
        return run_request(
            inp, user_repo, codec, install_secret, mailer, mail_settings, policy, time
        )

    elif isinstance(inp, ConfirmResetInput):
        assert auth_adapter
        return run_confirm(inp, user_repo, auth_adapter, codec, install_secret, policy, time)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
