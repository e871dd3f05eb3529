"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these definitions.

Only the identity side of the blog lives here: users and the token
blacklist. Posts, comments and categories reference users.id as their owner.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class Role(str, enum.Enum):
    STANDARD = "standard"
    ADMIN = "admin"


class User(Base):
    """A registered blog user.

    Learn: The password is only ever stored as a bcrypt hash. The
    reset_password_* pair holds the single outstanding password-reset
    token; it is cleared as soon as the token is consumed, which is what
    makes reset tokens single-use.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=new_uuid
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.STANDARD.value,
        server_default=Role.STANDARD.value,
    )  # standard, admin
    reset_password_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


class RevokedToken(Base):
    """A session token revoked before its natural expiry (sign-out).

    Learn: The row stores the exact token string. expires_at mirrors the
    longest token lifetime; once it passes, the row is dead weight and the
    purge sweep may delete it. Lookups deliberately ignore expires_at.
    """

    __tablename__ = "revoked_tokens"
    __table_args__ = (
        Index("ix_revoked_tokens_expires_at", "expires_at"),
    )

    token: Mapped[str] = mapped_column(Text, primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
