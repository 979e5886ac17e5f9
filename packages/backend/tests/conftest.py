"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps the single connection alive, so every session sees the same DB.
2. The schema is created from the models with metadata.create_all.
3. The API client overrides get_db to hand the app the test's session,
   so rows a test inserts directly are visible to the routes.

Settings are read at import time, so the environment is set up before
anything from wedsite is imported.
"""

import os

os.environ.setdefault("WEDSITE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WEDSITE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("WEDSITE_TOKEN_SECRET", "test-secret-not-for-production")

from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wedsite.auth.identity import Role
from wedsite.auth.password import hash_password
from wedsite.auth.tokens import TokenCodec
from wedsite.config import settings
from wedsite.db.engine import get_db
from wedsite.db.models import (
    Base,
    LegacyAdmin,
    SuperAdmin,
    Wedding,
    WeddingAdmin,
    WeddingAdminLink,
    WeddingSlug,
)
from wedsite.main import app

TEST_ROUNDS = 4
MASTER_PASSWORD = "master-secret-123"
LEGACY_WEDDING_ID = "00000000-0000-4000-8000-00000000beef"


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture()
def auth_settings(monkeypatch):
    """Master login enabled and a legacy tenant configured."""
    monkeypatch.setattr(settings, "master_password", MASTER_PASSWORD)
    monkeypatch.setattr(settings, "legacy_wedding_id", LEGACY_WEDDING_ID)
    return settings


@pytest_asyncio.fixture()
async def client(db_session, auth_settings):
    """HTTP client with the app's get_db bound to the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Tokens ─────────────────────────────────────────────


@pytest.fixture()
def codec():
    return TokenCodec(settings.token_secret)


@pytest.fixture()
def bearer(codec):
    """Build an Authorization header for any subject/role."""

    def _bearer(subject: str, role: Role, *, issued_at: Optional[int] = None) -> dict:
        tokens = codec.issue_pair(subject, role, issued_at=issued_at)
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _bearer


# ─── Rows ───────────────────────────────────────────────


@pytest.fixture()
def make_super_admin(db_session):
    async def _make(username: str = "root", password: str = "root-password-1"):
        admin = SuperAdmin(
            username=username,
            password_hash=hash_password(password, TEST_ROUNDS),
            created_by="test",
        )
        db_session.add(admin)
        await db_session.commit()
        return admin

    return _make


@pytest.fixture()
def make_wedding_admin(db_session):
    async def _make(
        username: str,
        password: str = "admin-password-1",
        wedding_ids: Optional[list[str]] = None,
        user_type: str = "client",
        must_change_password: bool = False,
    ):
        admin = WeddingAdmin(
            username=username,
            password_hash=hash_password(password, TEST_ROUNDS),
            wedding_ids=list(wedding_ids or []),
            user_type=user_type,
            must_change_password=must_change_password,
            created_by="test",
        )
        db_session.add(admin)
        await db_session.commit()
        return admin

    return _make


@pytest.fixture()
def make_legacy_admin(db_session):
    async def _make(username: str = "admin", password: str = "legacy-password-1"):
        admin = LegacyAdmin(
            username=username,
            password_hash=hash_password(password, TEST_ROUNDS),
            must_change_password=False,
        )
        db_session.add(admin)
        await db_session.commit()
        return admin

    return _make


@pytest.fixture()
def make_wedding(db_session):
    """Insert a wedding (with slug index) and optionally link owners."""

    async def _make(slug: str, status: str = "active", owners: tuple[str, ...] = ()):
        wedding = Wedding(
            slug=slug,
            display_name=slug.replace("-", " ").title(),
            status=status,
            owner_id=owners[0] if owners else None,
            co_owner_ids=list(owners[1:]),
            created_by="test",
        )
        db_session.add(wedding)
        await db_session.flush()
        db_session.add(WeddingSlug(slug=slug, wedding_id=wedding.wedding_id))
        for username in owners:
            db_session.add(
                WeddingAdminLink(
                    wedding_id=wedding.wedding_id, username=username, added_by="test"
                )
            )
        await db_session.commit()
        return wedding

    return _make


# ─── Redis ──────────────────────────────────────────────


class FakeRedis:
    """The three commands the app uses, backed by a dict."""

    def __init__(self, fail: bool = False):
        self.counters: dict[str, int] = {}
        self.expiry: dict[str, int] = {}
        self.fail = fail

    async def incr(self, key: str) -> int:
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.expiry[key] = seconds
        return True

    async def ping(self) -> bool:
        if self.fail:
            raise RedisConnectionError("connection refused")
        return True
