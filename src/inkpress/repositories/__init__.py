"""Persistence interfaces for the auth core.

Learn: The core only talks to two narrow repositories:

- UserRepository: find_by_email / find_by_id / save / claim_reset_token
- RevokedTokenRepository: create / find_by_token / delete_expired

Two implementations exist for each: SQLAlchemy-backed (sql.py) for real
deployments and dict-backed (memory.py) for tests and local runs. Both
raise InkpressError(PERSISTENCE_FAILURE) when the store misbehaves.
"""

import uuid
from datetime import datetime
from typing import Optional, Protocol

from inkpress.db.models import RevokedToken, User


class UserRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def save(self, user: User) -> User: ...

    async def claim_reset_token(
        self, user_id: uuid.UUID, token: str, password_hash: str, now: datetime
    ) -> bool:
        """Atomically swap in password_hash and clear the stored reset token.

        Only succeeds while the stored token equals `token` and its expiry is
        after `now`. Of several concurrent claims for one token, at most one
        returns True.
        """
        ...


class RevokedTokenRepository(Protocol):
    async def create(self, token: str, expires_at: datetime) -> RevokedToken: ...

    async def find_by_token(self, token: str) -> Optional[RevokedToken]: ...

    async def delete_expired(self, now: datetime) -> int: ...
