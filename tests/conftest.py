"""Test fixtures — in-memory storage, real auth pipeline.

Learn: Every test gets a fresh MemoryStore, so there is no cross-test
pollution and no PostgreSQL to provision. The repositories behind it
implement the same interface as the SQL ones, which means the
Authenticator, Authorizer, TokenBlacklist and SessionIssuer under test are
exactly the production classes.

The SQL repositories get their own fixtures over a throwaway SQLite file
(aiosqlite), created from the ORM metadata for each test.

bcrypt rounds are dropped to the minimum so sign-up-heavy tests stay fast.
"""

import os

os.environ.setdefault("INKPRESS_ENVIRONMENT", "test")
os.environ.setdefault("INKPRESS_BCRYPT_ROUNDS", "4")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from inkpress.auth.authenticator import Authenticator  # noqa: E402
from inkpress.auth.authorizer import Authorizer  # noqa: E402
from inkpress.auth.blacklist import TokenBlacklist  # noqa: E402
from inkpress.auth.password import hash_password  # noqa: E402
from inkpress.auth.sessions import SessionIssuer  # noqa: E402
from inkpress.config import Settings  # noqa: E402
from inkpress.db.engine import Database  # noqa: E402
from inkpress.db.models import Base, Role, User  # noqa: E402
from inkpress.main import create_app  # noqa: E402
from inkpress.repositories.memory import (  # noqa: E402
    MemoryRevokedTokenRepository,
    MemoryStore,
    MemoryUserRepository,
)


class RecordingNotifier:
    """Captures reset tokens instead of delivering them."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send_reset_token(self, email: str, token: str) -> None:
        self.sent.append((email, token))

    @property
    def last_token(self) -> str:
        return self.sent[-1][1]


# ─── Core components ─────────────────────────────────────


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def users(store):
    return MemoryUserRepository(store)


@pytest.fixture()
def revoked_tokens(store):
    return MemoryRevokedTokenRepository(store)


@pytest.fixture()
def blacklist(revoked_tokens):
    return TokenBlacklist(revoked_tokens)


@pytest.fixture()
def authenticator(blacklist):
    return Authenticator(blacklist)


@pytest.fixture()
def authorizer(users):
    return Authorizer(users)


@pytest.fixture()
def issuer(users, blacklist):
    return SessionIssuer(users, blacklist)


@pytest.fixture()
def make_user(users):
    """Factory: persist a user and return it."""

    async def _make(role: Role = Role.STANDARD, password: str = "password_123") -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            username=f"user-{suffix}",
            email=f"user-{suffix}@example.com",
            password_hash=hash_password(password),
            role=role.value,
        )
        return await users.save(user)

    return _make


# ─── SQL storage ───────────────────────────────────────


@pytest_asyncio.fixture()
async def database(tmp_path):
    """A Database over a fresh SQLite file with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inkpress.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    db = Database(engine)
    yield db
    await db.dispose()


@pytest_asyncio.fixture()
async def sql_session(database):
    async with database.session() as session:
        yield session


# ─── HTTP ────────────────────────────────────────────────


@pytest.fixture()
def app():
    return create_app(Settings(storage="memory", environment="test"))


@pytest.fixture()
def notifier(app):
    recorder = RecordingNotifier()
    app.state.reset_notifier = recorder
    return recorder


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def signed_up(client):
    """Register a fresh user over HTTP; returns (email, password, token)."""
    email = f"blogger-{uuid.uuid4().hex[:8]}@example.com"
    password = "my_password_123"
    r = await client.post(
        "/api/auth/sign-up",
        json={"username": "blogger", "email": email, "password": password},
    )
    assert r.status_code == 201
    return email, password, r.json()["token"]
