"""
Input validation shared by setup, invitation and password reset.

Email format follows a simplified RFC 5322 pattern; password rules come
from the ``passwords`` section of the rules file.
"""

from __future__ import annotations

import re

from staffauth.domain.errors import ValidationError

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 191


def normalize_email(email: str | None) -> str:
    return email.strip().lower() if email else ""


def is_valid_email(email: str | None) -> bool:
    normalized = normalize_email(email)
    if not normalized or len(normalized) > MAX_EMAIL_LENGTH:
        return False
    return EMAIL_REGEX.match(normalized) is not None


def validate_email(email: str | None, field: str = "email") -> tuple[ValidationError, ...]:
    if not normalize_email(email):
        return (ValidationError("required", "Email address is required", field),)
    if not is_valid_email(email):
        return (ValidationError("invalid_format", "Invalid email format", field),)
    return ()


def validate_name(name: str | None, field: str = "name") -> tuple[ValidationError, ...]:
    value = name.strip() if name else ""
    if not value:
        return (ValidationError("required", "Name is required", field),)
    if len(value) > MAX_NAME_LENGTH:
        return (
            ValidationError(
                "max_length", f"Name must be at most {MAX_NAME_LENGTH} characters", field
            ),
        )
    return ()


def validate_password(
    password: str | None,
    email: str | None,
    min_length: int,
    field: str = "password",
) -> tuple[ValidationError, ...]:
    """Check a new password against the configured policy."""
    if not password:
        return (ValidationError("required", "Password is required", field),)

    errors: list[ValidationError] = []
    if len(password) < min_length:
        errors.append(
            ValidationError(
                "min_length", f"Password must be at least {min_length} characters", field
            )
        )
    if len(set(password)) == 1:
        errors.append(
            ValidationError("too_simple", "Password cannot be a single repeated character", field)
        )
    if email and password.lower() == normalize_email(email):
        errors.append(
            ValidationError("matches_email", "Password cannot be your email address", field)
        )
    return tuple(errors)
