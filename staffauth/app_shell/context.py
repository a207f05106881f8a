from __future__ import annotations

from dataclasses import dataclass

from staffauth.adapters.auth.crypto import Argon2AuthAdapter
from staffauth.adapters.clock import SystemClock
from staffauth.adapters.dev_email import DevEmailAdapter
from staffauth.adapters.sqlite.repos import (
    SQLiteInviteRepo,
    SQLiteSessionRepo,
    SQLiteSettingsRepo,
    SQLiteUserRepo,
)
from staffauth.components.mass_reset import MassResetPolicy
from staffauth.components.reset_token import SignedResetTokenCodec
from staffauth.core.ports.email import EmailPort
from staffauth.core.services.mail import MailSettings
from staffauth.rules.models import Rules


@dataclass
class ServiceContext:
    """Repos, adapters and rule-derived settings for operator tooling."""

    db_path: str
    rules: Rules
    user_repo: SQLiteUserRepo
    invite_repo: SQLiteInviteRepo
    session_repo: SQLiteSessionRepo
    settings_repo: SQLiteSettingsRepo
    auth_adapter: Argon2AuthAdapter
    codec: SignedResetTokenCodec
    mailer: EmailPort
    mail_settings: MailSettings
    clock: SystemClock

    @classmethod
    def create(cls, db_path: str, rules: Rules, mailer: EmailPort | None = None) -> ServiceContext:
        return cls(
            db_path=db_path,
            rules=rules,
            user_repo=SQLiteUserRepo(db_path),
            invite_repo=SQLiteInviteRepo(db_path),
            session_repo=SQLiteSessionRepo(db_path),
            settings_repo=SQLiteSettingsRepo(db_path),
            auth_adapter=Argon2AuthAdapter(),
            codec=SignedResetTokenCodec(),
            mailer=mailer or DevEmailAdapter(),
            mail_settings=MailSettings(
                from_address=rules.mail.from_address,
                from_name=rules.mail.from_name,
                admin_url=rules.site.admin_url,
                reset_url_template=rules.password_reset.reset_url_template,
            ),
            clock=SystemClock(),
        )

    @property
    def mass_reset_policy(self) -> MassResetPolicy:
        return MassResetPolicy(
            notify_roles=frozenset(self.rules.mass_reset.notify_roles),
            token_ttl_minutes=self.rules.password_reset.token_ttl_minutes,
        )
