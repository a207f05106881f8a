"""
Failure taxonomy shared by the auth components.

Components report expected failures through an ``ErrorCode`` on their
output objects; store adapters raise the exceptions below for constraint
violations and components translate them into codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    ALREADY_CONFIGURED = "already_configured"
    NOT_CONFIGURED = "not_configured"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class ValidationError:
    """Field-level validation problem with an actionable message."""

    code: str
    message: str
    field: str


# --- Store exceptions ---


class StoreError(Exception):
    """Base exception for persistence constraint failures."""

    pass


class DuplicateEmailError(StoreError):
    """A user with this email address already exists."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"A user with email {email} already exists")


class OwnerExistsError(StoreError):
    """The owner account has already been created."""

    def __init__(self) -> None:
        super().__init__("An owner account already exists")
