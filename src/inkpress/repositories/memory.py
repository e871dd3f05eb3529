"""In-memory repositories — same interface as sql.py, backed by dicts.

Used by the test-suite and by `INKPRESS_STORAGE=memory` for running the API
without PostgreSQL. Everything runs on one event loop and no method awaits
between reading and writing a dict, so each operation is atomic per key.
"""

import uuid
from datetime import datetime
from typing import Optional

from inkpress.db.models import RevokedToken, Role, User, new_uuid, utcnow
from inkpress.errors import ErrorKind, InkpressError


class MemoryStore:
    """Backing dicts shared by the memory repositories of one process."""

    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}
        self.revoked_tokens: dict[str, RevokedToken] = {}


class MemoryUserRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def find_by_email(self, email: str) -> Optional[User]:
        for user in self.store.users.values():
            if user.email == email:
                return user
        return None

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.store.users.get(user_id)

    async def save(self, user: User) -> User:
        # Column defaults only fire on flush, so fill them in here
        if user.id is None:
            user.id = new_uuid()
        if user.role is None:
            user.role = Role.STANDARD.value
        if user.created_at is None:
            user.created_at = utcnow()

        for other in self.store.users.values():
            if other.email == user.email and other.id != user.id:
                raise InkpressError(ErrorKind.VALIDATION_FAILED, "User already exists")
        self.store.users[user.id] = user
        return user

    async def claim_reset_token(
        self, user_id: uuid.UUID, token: str, password_hash: str, now: datetime
    ) -> bool:
        user = self.store.users.get(user_id)
        if (
            not user
            or user.reset_password_token != token
            or user.reset_password_expires is None
            or user.reset_password_expires <= now
        ):
            return False
        user.password_hash = password_hash
        user.reset_password_token = None
        user.reset_password_expires = None
        return True


class MemoryRevokedTokenRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def create(self, token: str, expires_at: datetime) -> RevokedToken:
        existing = self.store.revoked_tokens.get(token)
        if existing:
            return existing
        entry = RevokedToken(token=token, expires_at=expires_at, created_at=utcnow())
        self.store.revoked_tokens[token] = entry
        return entry

    async def find_by_token(self, token: str) -> Optional[RevokedToken]:
        return self.store.revoked_tokens.get(token)

    async def delete_expired(self, now: datetime) -> int:
        expired = [t for t, e in self.store.revoked_tokens.items() if e.expires_at <= now]
        for token in expired:
            del self.store.revoked_tokens[token]
        return len(expired)
