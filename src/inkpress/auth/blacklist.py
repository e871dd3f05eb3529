"""Token blacklist — revoked session tokens.

Learn: JWTs are stateless, so "sign out" needs server-side memory of the
tokens that must no longer be honoured. Revocation writes (token,
expires_at) with expires_at = now + 30 days, the longest a session token
can live. Lookups match the exact token string and ignore expires_at: a
stale row that the purge sweep has not removed yet still blocks its token.
A wrongly-blocked dead token costs nothing; a wrongly-accepted one would.
"""

from datetime import datetime, timedelta, timezone

import structlog

from inkpress.config import settings
from inkpress.repositories import RevokedTokenRepository

logger = structlog.get_logger()


class TokenBlacklist:
    """Revoke tokens and answer "is this token revoked?"."""

    def __init__(self, repo: RevokedTokenRepository, ttl_days: int | None = None):
        self.repo = repo
        self.ttl = timedelta(
            days=settings.revoked_token_ttl_days if ttl_days is None else ttl_days
        )

    async def revoke(self, token: str) -> datetime:
        """Blacklist a token. Idempotent. Returns the entry's expiry."""
        expires_at = datetime.now(timezone.utc) + self.ttl
        entry = await self.repo.create(token, expires_at)
        logger.info(
            "auth.token_blacklisted",
            token=token[:10] + "...",
            expires_at=entry.expires_at.isoformat(),
        )
        return entry.expires_at

    async def is_revoked(self, token: str) -> bool:
        return await self.repo.find_by_token(token) is not None

    async def purge_expired(self) -> int:
        """Delete entries whose expiry has passed. Returns how many went."""
        removed = await self.repo.delete_expired(datetime.now(timezone.utc))
        logger.info("auth.blacklist_purged", removed=removed)
        return removed
