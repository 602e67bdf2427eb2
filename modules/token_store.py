"""
Drive token cookie
The short-lived Drive access token lives in one HTTP-only cookie. Route
handlers read it once and hand a DriveCredential to the Drive proxy.
"""
from dataclasses import dataclass
from typing import Optional

from modules.errors import ValidationError

COOKIE_NAME = "drive_token"
DEFAULT_MAX_AGE = 300


@dataclass(frozen=True)
class DriveCredential:
    token: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.token)


def get_token(request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME) or None


def credential_from(request) -> DriveCredential:
    return DriveCredential(get_token(request))


def set_token(response, value: str, max_age: int, secure: bool = False):
    """Store ``value`` for ``max_age`` seconds; 0 deletes the cookie."""
    if max_age == 0:
        return clear_token(response, secure=secure)
    if max_age < 1:
        raise ValidationError("maxAge must be at least 1 second")
    response.set_cookie(
        COOKIE_NAME,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=secure,
        samesite="Lax",
    )
    return response


def clear_token(response, secure: bool = False):
    response.set_cookie(
        COOKIE_NAME,
        "",
        max_age=0,
        path="/",
        httponly=True,
        secure=secure,
        samesite="Lax",
    )
    return response


def max_age_from(expires_in_sec) -> int:
    try:
        seconds = int(expires_in_sec or DEFAULT_MAX_AGE)
    except (TypeError, ValueError):
        raise ValidationError("expiresInSec must be a number")
    return max(1, seconds)
