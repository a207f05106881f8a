"""Mass reset ("break glass") component.

Locks every account and destroys every session in one store transaction,
then mails fresh reset links to the privileged accounts. Mail goes out
one recipient at a time and a failure for one does not stop the rest.
"""

from __future__ import annotations

import logging

from staffauth.components.password_reset import issue_reset_token
from staffauth.core.services.mail import MailSettings
from staffauth.domain.entities import STAFF_ADMIN_ROLES
from staffauth.domain.errors import ErrorCode

from .models import MassResetPolicy, ResetAllInput, ResetAllOutput
from .ports import EmailPort, ResetTokenCodecPort, TimePort, UserRepoPort

logger = logging.getLogger(__name__)


def _is_allowed(inp: ResetAllInput) -> bool:
    if inp.internal:
        return True
    return (
        inp.actor is not None
        and inp.actor.status == "active"
        and inp.actor.has_any_role(STAFF_ADMIN_ROLES)
    )


def run_reset_all(
    inp: ResetAllInput,
    user_repo: UserRepoPort,
    codec: ResetTokenCodecPort,
    install_secret: str,
    mailer: EmailPort,
    mail_settings: MailSettings,
    policy: MassResetPolicy,
    time: TimePort,
) -> ResetAllOutput:
    if not _is_allowed(inp):
        return ResetAllOutput.failed(ErrorCode.FORBIDDEN, "Not allowed to reset all passwords")

    now = time.now_utc()
    users, revoked = user_repo.lock_all_and_revoke_sessions(now)
    logger.warning("Mass reset: locked %d accounts, revoked %d sessions", len(users), revoked)

    notified = 0
    failed = 0
    for user in users:
        if not user.has_any_role(policy.notify_roles):
            continue
        issued = issue_reset_token(
            user,
            codec,
            install_secret,
            now,
            policy.token_ttl_minutes,
            mailer=mailer,
            mail_settings=mail_settings,
        )
        if issued.mail is not None and issued.mail.delivered:
            notified += 1
        else:
            failed += 1

    if failed:
        logger.warning("Mass reset: %d reset notifications could not be sent", failed)

    return ResetAllOutput(
        locked_count=len(users),
        sessions_revoked=revoked,
        notified=notified,
        notify_failed=failed,
        success=True,
    )


def run(
    inp: ResetAllInput,
    *,
    user_repo: UserRepoPort,
    codec: ResetTokenCodecPort,
    install_secret: str,
    mailer: EmailPort,
    mail_settings: MailSettings,
    policy: MassResetPolicy,
    time: TimePort,
) -> ResetAllOutput:
    if not isinstance(inp, ResetAllInput):
        raise ValueError(f"Unknown input type: {type(inp)}")
    return run_reset_all(
        inp, user_repo, codec, install_secret, mailer, mail_settings, policy, time
    )
