from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from staffauth.domain.entities import RoleType, User, UserStatus


# --- Requests ---
class SetupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    password: str
    blog_title: str | None = Field(default=None, alias="blogTitle")


class AcceptInvitationRequest(BaseModel):
    token: str
    email: str
    password: str
    name: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")


class LoginRequest(BaseModel):
    email: str
    password: str


# --- Responses ---
class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    roles: list[RoleType]
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.display_name,
            roles=list(user.roles),
            status=user.status,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class SetupStatusResponse(BaseModel):
    configured: bool


class InvitationStatusResponse(BaseModel):
    is_invited: bool = Field(serialization_alias="isInvited")
    invited_by: str | None = Field(default=None, serialization_alias="invitedBy")


class MessageResponse(BaseModel):
    message: str


class ResetAllResponse(BaseModel):
    locked: int
    sessions_revoked: int
    notified: int
    notify_failed: int
