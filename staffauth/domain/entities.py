from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
RoleType = Literal["owner", "admin", "editor", "author", "contributor"]
UserStatus = Literal["active", "locked", "inactive"]

# Roles allowed to administer staff (invite, break-glass reset)
STAFF_ADMIN_ROLES: frozenset[str] = frozenset({"owner", "admin"})


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- User & Auth ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    password_hash: str
    roles: list[RoleType] = Field(default_factory=list)
    status: UserStatus = "active"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_owner(self) -> bool:
        return "owner" in self.roles

    def has_any_role(self, roles: frozenset[str] | set[str] | list[str]) -> bool:
        return any(role in roles for role in self.roles)


class Session(BaseModel):
    id: str
    user_id: UUID
    token_hash: str  # SHA-256 of the raw session token; the raw token is never stored
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)


# --- Invitations ---

class Invite(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    token_hash: str
    email: str
    role: RoleType = "contributor"
    expires_at: datetime
    invited_by_user_id: UUID | None = None
    redeemed_at: datetime | None = None
    redeemed_by_user_id: UUID | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def is_open(self, now: datetime) -> bool:
        """Not yet redeemed and not past its expiry (inclusive)."""
        return self.redeemed_at is None and now <= self.expires_at


# --- Settings keys ---

SETTING_INSTALL_SECRET = "db_hash"
SETTING_SITE_TITLE = "title"
