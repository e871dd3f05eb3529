"""Role and ownership checks.

Learn: Roles are never read from the token. Every decision loads the user
row, so promoting or demoting someone takes effect on their very next
request without re-issuing tokens. The owner check short-circuits before
any database read.
"""

import uuid
from typing import Optional

import structlog

from inkpress.auth.authenticator import IdentityClaim
from inkpress.errors import ErrorKind, InkpressError
from inkpress.repositories import UserRepository

logger = structlog.get_logger()


def _as_uuid(value) -> Optional[uuid.UUID]:
    """Owner ids may arrive as UUIDs or as their string form."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class Authorizer:
    def __init__(self, users: UserRepository):
        self.users = users

    async def authorize_admin(self, claim: IdentityClaim) -> None:
        """Allow only callers whose current role is admin."""
        user = await self.users.find_by_id(claim.subject)
        if not user:
            raise InkpressError(ErrorKind.IDENTITY_NOT_FOUND)
        if not user.is_admin:
            raise InkpressError(ErrorKind.INSUFFICIENT_ROLE)
        logger.info("auth.admin_verified", user_id=str(claim.subject))

    async def authorize_owner_or_admin(
        self, claim: IdentityClaim, resource_owner_id: uuid.UUID | str
    ) -> None:
        """Allow the resource's owner, or any admin."""
        if claim.subject == _as_uuid(resource_owner_id):
            return

        user = await self.users.find_by_id(claim.subject)
        if user and user.is_admin:
            logger.info(
                "auth.admin_override",
                user_id=str(claim.subject),
                owner_id=str(resource_owner_id),
            )
            return
        raise InkpressError(ErrorKind.NOT_AUTHORIZED)
