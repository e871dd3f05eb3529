"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Session token: long-lived (30 days), sent as `Authorization: Bearer ...`
- Reset token: short-lived (1 hour), mailed to the user for password reset

Both carry the user id in `sub`, a `type` claim so one flavour can't be
used as the other, and a random `jti` so two tokens minted in the same
second are still distinct strings (the blacklist matches exact strings).
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from inkpress.config import Settings, settings

SESSION = "session"
RESET = "reset"


class TokenError(Exception):
    """Raised when token verification fails."""


def _encode(
    user_id: str, token_type: str, lifetime: timedelta, app_settings: Settings
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": token_type,
        "exp": now + lifetime,
        "iat": now,
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload, app_settings.jwt_secret, algorithm=app_settings.jwt_algorithm
    )


def create_session_token(
    user_id: str,
    expires_days: Optional[int] = None,
    app_settings: Optional[Settings] = None,
) -> str:
    """Create a JWT session token."""
    app_settings = app_settings or settings
    days = app_settings.session_token_expire_days if expires_days is None else expires_days
    return _encode(user_id, SESSION, timedelta(days=days), app_settings)


def create_reset_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
    app_settings: Optional[Settings] = None,
) -> str:
    """Create a JWT password-reset token."""
    app_settings = app_settings or settings
    minutes = (
        app_settings.reset_token_expire_minutes
        if expires_minutes is None
        else expires_minutes
    )
    return _encode(user_id, RESET, timedelta(minutes=minutes), app_settings)


def verify_token(
    token: str,
    expected_type: Optional[str] = None,
    app_settings: Optional[Settings] = None,
) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    app_settings = app_settings or settings
    try:
        payload = jwt.decode(
            token,
            app_settings.jwt_secret,
            algorithms=[app_settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if expected_type and payload.get("type") != expected_type:
        raise TokenError(f"Not a {expected_type} token")
    return payload
