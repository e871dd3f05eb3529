"""Bearer-token authentication.

Learn: Order matters. The blacklist is consulted BEFORE the signature, so a
signed-out token is rejected as revoked even while it is still
cryptographically valid. If the blacklist store is down, the repository
raises PERSISTENCE_FAILURE and authentication fails with it: there is no
path that authenticates without a successful blacklist read.

No user row is loaded here. The claim is just "who the token says you
are"; role checks happen later in the Authorizer, against fresh data.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog

from inkpress.auth.blacklist import TokenBlacklist
from inkpress.auth.jwt import SESSION, TokenError, verify_token
from inkpress.config import Settings
from inkpress.errors import ErrorKind, InkpressError

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class IdentityClaim:
    """The decoded, verified content of a session token."""

    subject: uuid.UUID
    expires_at: datetime
    token: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise InkpressError(ErrorKind.MISSING_CREDENTIAL)
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise InkpressError(ErrorKind.MISSING_CREDENTIAL)
    return token


class Authenticator:
    def __init__(
        self, blacklist: TokenBlacklist, app_settings: Optional[Settings] = None
    ):
        self.blacklist = blacklist
        self.settings = app_settings

    async def authenticate(self, authorization: Optional[str]) -> IdentityClaim:
        """Validate a bearer header value and return the identity claim."""
        token = extract_bearer_token(authorization)

        if await self.blacklist.is_revoked(token):
            raise InkpressError(ErrorKind.REVOKED_CREDENTIAL)

        try:
            payload = verify_token(
                token, expected_type=SESSION, app_settings=self.settings
            )
            subject = uuid.UUID(str(payload["sub"]))
        except TokenError as e:
            raise InkpressError(ErrorKind.INVALID_CREDENTIAL, detail=str(e))
        except ValueError:
            raise InkpressError(ErrorKind.INVALID_CREDENTIAL, detail="Malformed subject")

        claim = IdentityClaim(
            subject=subject,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token=token,
        )
        logger.info("auth.token_verified", user_id=str(subject))
        return claim
