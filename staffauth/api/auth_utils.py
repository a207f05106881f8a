from fastapi import Response

from staffauth.rules.models import Rules


def set_session_cookie(response: Response, token: str, rules: Rules) -> None:
    """Set the HttpOnly session cookie carrying the raw session token."""
    max_age = rules.sessions.ttl_minutes * 60
    response.set_cookie(
        key=rules.sessions.cookie_name,
        value=token,
        httponly=True,
        max_age=max_age,
        expires=max_age,
        samesite="lax",
        secure=rules.sessions.cookie_secure,
    )


def clear_session_cookie(response: Response, rules: Rules) -> None:
    response.delete_cookie(key=rules.sessions.cookie_name)
