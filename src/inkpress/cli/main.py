"""Inkpress admin CLI — out-of-band operations against the database.

Usage:
    inkpress serve                          # Run the API with uvicorn
    inkpress set-role alice@example.com admin
    inkpress purge-revoked-tokens           # Delete expired blacklist rows

Roles are only ever changed here, never through the HTTP API.
"""

from __future__ import annotations

import asyncio

import click

from inkpress import __version__
from inkpress.auth.blacklist import TokenBlacklist
from inkpress.config import settings
from inkpress.db.engine import Database
from inkpress.db.models import Role
from inkpress.errors import InkpressError
from inkpress.logging import configure_logging
from inkpress.repositories import RevokedTokenRepository, UserRepository
from inkpress.repositories.sql import SqlRevokedTokenRepository, SqlUserRepository


# ---------------------------------------------------------------------------
# Operations (repository-level, so they run against any backend)
# ---------------------------------------------------------------------------


async def change_role(users: UserRepository, email: str, role: Role) -> bool:
    """Set a user's role. Returns False if no user has that email."""
    user = await users.find_by_email(email)
    if not user:
        return False
    user.role = role.value
    await users.save(user)
    return True


async def purge_revoked(revoked_tokens: RevokedTokenRepository) -> int:
    return await TokenBlacklist(revoked_tokens).purge_expired()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _with_database(fn):
    """Run fn(session) against the configured database, then dispose."""
    database = Database.from_settings(settings)
    try:
        async with database.session() as session:
            return await fn(session)
    finally:
        await database.dispose()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="inkpress")
def main():
    """Inkpress — blog backend administration."""
    configure_logging(settings.log_level, json_output=settings.log_json)


@main.command()
@click.option("--host", default=None, help="Bind address (default: INKPRESS_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: INKPRESS_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "inkpress.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("set-role")
@click.argument("email")
@click.argument("role", type=click.Choice([r.value for r in Role]))
def set_role(email: str, role: str):
    """Promote or demote a user. Takes effect on their next request."""

    async def run(session):
        return await change_role(SqlUserRepository(session), email, Role(role))

    try:
        found = asyncio.run(_with_database(run))
    except InkpressError as e:
        _fail(f"{e.message} ({e.detail})")
    if not found:
        _fail(f"no user with email {email}")
    click.secho(f"{email} is now {role}", fg="green")


@main.command("purge-revoked-tokens")
def purge_revoked_tokens():
    """Delete revoked-token rows whose expiry has passed."""

    async def run(session):
        return await purge_revoked(SqlRevokedTokenRepository(session))

    try:
        removed = asyncio.run(_with_database(run))
    except InkpressError as e:
        _fail(f"{e.message} ({e.detail})")
    click.echo(f"Removed {removed} expired revoked token(s)")


if __name__ == "__main__":
    main()
