"""Session issuer — mints, consumes and revokes tokens.

Learn: A reset token lives in two places: the signed JWT handed to the
user, and a copy (plus expiry) on the user row. Consuming requires both to
agree, then clears the copy. That makes reset tokens single-use even though
the JWT itself would stay valid for the rest of its hour:

    issued ──consume──▶ consumed   (row cleared, replay fails)
       └────clock─────▶ expired    (stored expiry passed, fails)

Issuing a new reset token overwrites the stored one, so only the most
recent token is ever usable.

The compare-and-clear is one repository call (a conditional UPDATE in SQL),
and the new password is hashed before it. Two concurrent consumes of the
same token therefore race on the claim, not on a read, and one of them loses.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from inkpress.auth.blacklist import TokenBlacklist
from inkpress.auth.jwt import (
    RESET,
    TokenError,
    create_reset_token,
    create_session_token,
    verify_token,
)
from inkpress.auth.password import hash_password_async
from inkpress.config import Settings, settings
from inkpress.db.models import User
from inkpress.errors import ErrorKind, InkpressError
from inkpress.repositories import UserRepository

logger = structlog.get_logger()


class SessionIssuer:
    def __init__(
        self,
        users: UserRepository,
        blacklist: TokenBlacklist,
        app_settings: Optional[Settings] = None,
    ):
        self.users = users
        self.blacklist = blacklist
        self.settings = app_settings or settings

    def issue_session(self, user_id: uuid.UUID) -> str:
        """Mint a long-lived session token for a user."""
        return create_session_token(str(user_id), app_settings=self.settings)

    async def issue_reset_token(self, user: User) -> str:
        """Mint a reset token and remember it on the user row."""
        token = create_reset_token(str(user.id), app_settings=self.settings)
        user.reset_password_token = token
        user.reset_password_expires = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.reset_token_expire_minutes
        )
        await self.users.save(user)
        logger.info("auth.reset_token_issued", user_id=str(user.id))
        return token

    async def consume_reset_token(self, token: str, new_password: str) -> User:
        """Set a new password using a reset token. Works at most once per token."""
        try:
            payload = verify_token(token, expected_type=RESET, app_settings=self.settings)
            user_id = uuid.UUID(str(payload["sub"]))
        except (TokenError, ValueError) as e:
            raise InkpressError(ErrorKind.INVALID_OR_EXPIRED_TOKEN, detail=str(e))

        password_hash = await hash_password_async(
            new_password, rounds=self.settings.bcrypt_rounds
        )
        claimed = await self.users.claim_reset_token(
            user_id, token, password_hash, datetime.now(timezone.utc)
        )
        if not claimed:
            raise InkpressError(ErrorKind.INVALID_OR_EXPIRED_TOKEN)

        user = await self.users.find_by_id(user_id)
        if not user:
            raise InkpressError(ErrorKind.INVALID_OR_EXPIRED_TOKEN)
        logger.info("auth.password_reset", user_id=str(user.id))
        return user

    async def sign_out(self, token: str) -> None:
        """Revoke a session token."""
        await self.blacklist.revoke(token)
