from pydantic import BaseModel, ConfigDict, Field

from staffauth.domain.entities import RoleType


class PasswordRules(BaseModel):
    min_length: int = Field(default=10, ge=1)


class SessionsRules(BaseModel):
    ttl_minutes: int = Field(default=60 * 24, ge=1)
    cookie_name: str = "staffauth_session"
    cookie_secure: bool = False


class PasswordResetRules(BaseModel):
    token_ttl_minutes: int = Field(default=60, ge=1)
    reset_url_template: str = "{admin_url}/reset/{token}/"


class InvitationRules(BaseModel):
    days_valid: int = Field(default=7, ge=1)
    accept_url_template: str = "{admin_url}/signup/{token}/"


class MassResetRules(BaseModel):
    notify_roles: list[RoleType] = Field(default_factory=lambda: ["owner", "admin"])


class MailRules(BaseModel):
    from_address: str = "noreply@localhost"
    from_name: str | None = None


class SiteRules(BaseModel):
    default_title: str = "My Site"
    admin_url: str = "http://localhost:2368/admin"


class Rules(BaseModel):
    passwords: PasswordRules = Field(default_factory=PasswordRules)
    sessions: SessionsRules = Field(default_factory=SessionsRules)
    password_reset: PasswordResetRules = Field(default_factory=PasswordResetRules)
    invitations: InvitationRules = Field(default_factory=InvitationRules)
    mass_reset: MassResetRules = Field(default_factory=MassResetRules)
    mail: MailRules = Field(default_factory=MailRules)
    site: SiteRules = Field(default_factory=SiteRules)

    model_config = ConfigDict(extra="forbid")
