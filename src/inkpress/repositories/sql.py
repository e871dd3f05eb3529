"""SQLAlchemy-backed repositories.

Learn: Each repository wraps the request's AsyncSession. Writes commit
immediately: every auth write (create user, store reset token, revoke a
token) is a single-row operation, so there is no multi-statement unit of
work to coordinate. Driver and SQL errors are translated to
InkpressError(PERSISTENCE_FAILURE) so callers deal with one error type.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.db.models import RevokedToken, User
from inkpress.errors import ErrorKind, InkpressError


@asynccontextmanager
async def _persistence_errors(session: AsyncSession) -> AsyncIterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        await session.rollback()
        raise InkpressError(ErrorKind.PERSISTENCE_FAILURE, detail=str(e)) from e


class SqlUserRepository:
    """Users table access."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Optional[User]:
        async with _persistence_errors(self.session):
            result = await self.session.execute(select(User).where(User.email == email))
            return result.scalars().first()

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        async with _persistence_errors(self.session):
            return await self.session.get(User, user_id, populate_existing=True)

    async def save(self, user: User) -> User:
        """Insert or update a user and commit."""
        try:
            self.session.add(user)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise InkpressError(
                ErrorKind.VALIDATION_FAILED, "User already exists", detail=str(e.orig)
            ) from e
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise InkpressError(ErrorKind.PERSISTENCE_FAILURE, detail=str(e)) from e
        return user

    async def claim_reset_token(
        self, user_id: uuid.UUID, token: str, password_hash: str, now: datetime
    ) -> bool:
        """Conditional UPDATE: the WHERE clause is the single-use check."""
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.reset_password_token == token,
                User.reset_password_expires > now,
            )
            .values(
                password_hash=password_hash,
                reset_password_token=None,
                reset_password_expires=None,
            )
            .execution_options(synchronize_session=False)
        )
        async with _persistence_errors(self.session):
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount == 1


class SqlRevokedTokenRepository:
    """revoked_tokens table access."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: str, expires_at: datetime) -> RevokedToken:
        """Insert a revocation row. Re-revoking an existing token is a no-op."""
        existing = await self.find_by_token(token)
        if existing:
            return existing

        entry = RevokedToken(token=token, expires_at=expires_at)
        try:
            self.session.add(entry)
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent sign-out of the same token
            await self.session.rollback()
            existing = await self.find_by_token(token)
            if existing:
                return existing
            raise InkpressError(ErrorKind.PERSISTENCE_FAILURE, detail="revocation insert failed")
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise InkpressError(ErrorKind.PERSISTENCE_FAILURE, detail=str(e)) from e
        return entry

    async def find_by_token(self, token: str) -> Optional[RevokedToken]:
        async with _persistence_errors(self.session):
            return await self.session.get(RevokedToken, token, populate_existing=True)

    async def delete_expired(self, now: datetime) -> int:
        """Delete rows whose expires_at has passed. Returns rows removed."""
        async with _persistence_errors(self.session):
            result = await self.session.execute(
                delete(RevokedToken)
                .where(RevokedToken.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
            return result.rowcount or 0
