"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

    get_settings          → the Settings the app was built with
    get_stores            → repositories for this request (one DB session)
    get_current_identity  → Authorization header → IdentityClaim (401 otherwise)
    require_admin         → IdentityClaim whose user currently has role admin
    get_authorizer        → for owner-or-admin checks once the handler has
                            loaded the resource and knows its owner

FastAPI caches a dependency per request, so every component in a request
shares the same session.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, Request

from inkpress.auth.authenticator import Authenticator, IdentityClaim
from inkpress.auth.authorizer import Authorizer
from inkpress.auth.blacklist import TokenBlacklist
from inkpress.auth.sessions import SessionIssuer
from inkpress.config import Settings
from inkpress.db.engine import Database
from inkpress.repositories import RevokedTokenRepository, UserRepository
from inkpress.repositories.memory import (
    MemoryRevokedTokenRepository,
    MemoryStore,
    MemoryUserRepository,
)
from inkpress.repositories.sql import SqlRevokedTokenRepository, SqlUserRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@dataclass
class Stores:
    users: UserRepository
    revoked_tokens: RevokedTokenRepository


async def get_stores(request: Request) -> AsyncIterator[Stores]:
    """Yield the repositories for one request, closing the session after."""
    memory: Optional[MemoryStore] = getattr(request.app.state, "memory_store", None)
    if memory is not None:
        yield Stores(
            users=MemoryUserRepository(memory),
            revoked_tokens=MemoryRevokedTokenRepository(memory),
        )
        return

    database: Database = request.app.state.database
    async with database.session() as session:
        yield Stores(
            users=SqlUserRepository(session),
            revoked_tokens=SqlRevokedTokenRepository(session),
        )


def get_blacklist(
    stores: Stores = Depends(get_stores),
    app_settings: Settings = Depends(get_settings),
) -> TokenBlacklist:
    return TokenBlacklist(
        stores.revoked_tokens, ttl_days=app_settings.revoked_token_ttl_days
    )


def get_authenticator(
    blacklist: TokenBlacklist = Depends(get_blacklist),
    app_settings: Settings = Depends(get_settings),
) -> Authenticator:
    return Authenticator(blacklist, app_settings)


def get_authorizer(stores: Stores = Depends(get_stores)) -> Authorizer:
    return Authorizer(stores.users)


def get_session_issuer(
    stores: Stores = Depends(get_stores),
    blacklist: TokenBlacklist = Depends(get_blacklist),
    app_settings: Settings = Depends(get_settings),
) -> SessionIssuer:
    return SessionIssuer(stores.users, blacklist, app_settings)


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    authenticator: Authenticator = Depends(get_authenticator),
) -> IdentityClaim:
    """Extract current identity (required — 401 if missing, revoked or invalid)."""
    return await authenticator.authenticate(authorization)


async def require_admin(
    claim: IdentityClaim = Depends(get_current_identity),
    authorizer: Authorizer = Depends(get_authorizer),
) -> IdentityClaim:
    """Like get_current_identity, but the caller must currently be an admin."""
    await authorizer.authorize_admin(claim)
    return claim
