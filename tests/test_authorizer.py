"""Authorizer tests — admin checks and owner-or-admin checks.

Learn: The role is read from the store on every call, so these tests
change a user's role between calls and expect the very next decision to
reflect it.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from inkpress.auth.authenticator import IdentityClaim
from inkpress.auth.authorizer import Authorizer
from inkpress.db.models import Role
from inkpress.errors import ErrorKind, InkpressError


def _claim(subject: uuid.UUID) -> IdentityClaim:
    return IdentityClaim(
        subject=subject,
        expires_at=datetime.now(timezone.utc) + timedelta(days=30),
        token="unused",
    )


class CountingUsers:
    """Wraps a user repository and counts reads."""

    def __init__(self, inner):
        self.inner = inner
        self.reads = 0

    async def find_by_id(self, user_id):
        self.reads += 1
        return await self.inner.find_by_id(user_id)


# ─── authorize_admin ─────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_is_allowed(authorizer, make_user):
    admin = await make_user(role=Role.ADMIN)
    await authorizer.authorize_admin(_claim(admin.id))


@pytest.mark.asyncio
async def test_standard_user_lacks_role(authorizer, make_user):
    user = await make_user()
    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_admin(_claim(user.id))
    assert exc.value.kind == ErrorKind.INSUFFICIENT_ROLE


@pytest.mark.asyncio
async def test_admin_check_for_vanished_identity(authorizer):
    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_admin(_claim(uuid.uuid4()))
    assert exc.value.kind == ErrorKind.IDENTITY_NOT_FOUND
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_demotion_applies_to_next_decision(authorizer, users, make_user):
    admin = await make_user(role=Role.ADMIN)
    claim = _claim(admin.id)
    await authorizer.authorize_admin(claim)

    admin.role = Role.STANDARD.value
    await users.save(admin)

    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_admin(claim)
    assert exc.value.kind == ErrorKind.INSUFFICIENT_ROLE


# ─── authorize_owner_or_admin ────────────────────────────


@pytest.mark.asyncio
async def test_owner_short_circuits_without_store_read(users, make_user):
    owner = await make_user()
    counting = CountingUsers(users)
    await Authorizer(counting).authorize_owner_or_admin(_claim(owner.id), owner.id)
    assert counting.reads == 0


@pytest.mark.asyncio
async def test_admin_may_act_on_others_resources(authorizer, make_user):
    admin = await make_user(role=Role.ADMIN)
    author = await make_user()
    await authorizer.authorize_owner_or_admin(_claim(admin.id), author.id)


@pytest.mark.asyncio
async def test_non_owner_non_admin_is_rejected(authorizer, make_user):
    intruder = await make_user()
    author = await make_user()
    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_owner_or_admin(_claim(intruder.id), author.id)
    assert exc.value.kind == ErrorKind.NOT_AUTHORIZED


@pytest.mark.asyncio
async def test_role_granted_after_token_issued(
    authorizer, users, issuer, authenticator, make_user
):
    """Promotion counts even for a token minted while the user was standard."""
    user = await make_user()
    author = await make_user()
    token = issuer.issue_session(user.id)
    claim = await authenticator.authenticate(f"Bearer {token}")

    with pytest.raises(InkpressError):
        await authorizer.authorize_owner_or_admin(claim, author.id)

    user.role = Role.ADMIN.value
    await users.save(user)

    await authorizer.authorize_owner_or_admin(claim, author.id)


@pytest.mark.asyncio
async def test_vanished_non_owner_is_not_authorized(authorizer):
    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_owner_or_admin(_claim(uuid.uuid4()), uuid.uuid4())
    assert exc.value.kind == ErrorKind.NOT_AUTHORIZED


@pytest.mark.asyncio
async def test_owner_id_as_string_short_circuits(users, make_user):
    owner = await make_user()
    counting = CountingUsers(users)
    await Authorizer(counting).authorize_owner_or_admin(_claim(owner.id), str(owner.id))
    assert counting.reads == 0


@pytest.mark.asyncio
async def test_malformed_owner_id_falls_back_to_role(authorizer, make_user):
    admin = await make_user(role=Role.ADMIN)
    author = await make_user()

    await authorizer.authorize_owner_or_admin(_claim(admin.id), "not-a-uuid")
    with pytest.raises(InkpressError) as exc:
        await authorizer.authorize_owner_or_admin(_claim(author.id), "not-a-uuid")
    assert exc.value.kind == ErrorKind.NOT_AUTHORIZED
