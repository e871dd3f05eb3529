"""Session issuer tests — session tokens, reset tokens, sign-out.

Learn: Reset tokens follow issued → consumed | expired. The tests drive
each transition and check that every path out of `issued` is final.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from inkpress.auth.jwt import RESET, SESSION, create_reset_token, verify_token
from inkpress.auth.password import verify_password
from inkpress.errors import ErrorKind, InkpressError


# ─── Session tokens ─────────────────────────────────────


def test_issue_session_encodes_subject(issuer):
    user_id = uuid.uuid4()
    payload = verify_token(issuer.issue_session(user_id))
    assert payload["sub"] == str(user_id)
    assert payload["type"] == SESSION

    lifetime = payload["exp"] - payload["iat"]
    assert timedelta(seconds=lifetime) == timedelta(days=30)


def test_session_tokens_are_distinct(issuer):
    user_id = uuid.uuid4()
    assert issuer.issue_session(user_id) != issuer.issue_session(user_id)


@pytest.mark.asyncio
async def test_sign_out_blacklists_token(issuer, blacklist):
    token = issuer.issue_session(uuid.uuid4())
    await issuer.sign_out(token)
    assert await blacklist.is_revoked(token)


# ─── Reset tokens ───────────────────────────────────────


@pytest.mark.asyncio
async def test_issue_reset_token_is_stored_on_user(issuer, make_user):
    user = await make_user()
    token = await issuer.issue_reset_token(user)

    payload = verify_token(token, expected_type=RESET)
    assert payload["sub"] == str(user.id)
    assert payload["exp"] - payload["iat"] == 3600
    assert user.reset_password_token == token
    assert user.reset_password_expires > datetime.now(timezone.utc) + timedelta(minutes=59)


@pytest.mark.asyncio
async def test_consume_reset_token_once(issuer, users, make_user):
    user = await make_user(password="old_password")
    token = await issuer.issue_reset_token(user)

    await issuer.consume_reset_token(token, "new_password")

    stored = await users.find_by_id(user.id)
    assert verify_password("new_password", stored.password_hash)
    assert not verify_password("old_password", stored.password_hash)
    assert stored.reset_password_token is None
    assert stored.reset_password_expires is None

    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(token, "another_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN

    stored = await users.find_by_id(user.id)
    assert verify_password("new_password", stored.password_hash)


@pytest.mark.asyncio
async def test_concurrent_consumes_only_one_wins(issuer, users, make_user):
    user = await make_user(password="old_password")
    token = await issuer.issue_reset_token(user)

    results = await asyncio.gather(
        issuer.consume_reset_token(token, "first_password"),
        issuer.consume_reset_token(token, "second_password"),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, InkpressError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN

    winning_password = "first_password" if results[0] is winners[0] else "second_password"
    stored = await users.find_by_id(user.id)
    assert verify_password(winning_password, stored.password_hash)
    assert stored.reset_password_token is None


@pytest.mark.asyncio
async def test_consume_after_stored_expiry(issuer, users, make_user):
    """The row's expiry wins even if the JWT itself is still valid."""
    user = await make_user()
    token = await issuer.issue_reset_token(user)
    user.reset_password_expires = datetime.now(timezone.utc) - timedelta(seconds=1)
    await users.save(user)

    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(token, "new_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN


@pytest.mark.asyncio
async def test_new_reset_token_supersedes_old(issuer, make_user):
    user = await make_user()
    old = await issuer.issue_reset_token(user)
    new = await issuer.issue_reset_token(user)

    with pytest.raises(InkpressError):
        await issuer.consume_reset_token(old, "new_password")
    await issuer.consume_reset_token(new, "new_password")


@pytest.mark.asyncio
async def test_unstored_reset_token_rejected(issuer, make_user):
    """Validly signed but never issued through the issuer."""
    user = await make_user()
    token = create_reset_token(str(user.id))
    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(token, "new_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN


@pytest.mark.asyncio
async def test_session_token_cannot_reset_password(issuer, make_user):
    user = await make_user()
    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(issuer.issue_session(user.id), "new_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN


@pytest.mark.asyncio
async def test_reset_token_for_unknown_user(issuer):
    token = create_reset_token(str(uuid.uuid4()))
    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(token, "new_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN


@pytest.mark.asyncio
async def test_expired_reset_jwt(issuer):
    token = create_reset_token(str(uuid.uuid4()), expires_minutes=-5)
    with pytest.raises(InkpressError) as exc:
        await issuer.consume_reset_token(token, "new_password")
    assert exc.value.kind == ErrorKind.INVALID_OR_EXPIRED_TOKEN
    assert exc.value.status_code == 400
