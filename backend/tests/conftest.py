"""
LinkMe Backend - Test Configuration (conftest.py)
===================================================

Fixture Hierarchy (all function-scoped):
    ├── db_engine:        in-memory SQLite (aiosqlite) with every table created
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── db_session:       one AsyncSession for service-level tests
    ├── make_user / make_profile / make_view / make_link: committed rows
    ├── auth_headers:     Bearer header factory for a user id
    ├── geo_locator:      GeoLocator with a mocked geoip2 reader
    └── test_client:      httpx AsyncClient over a fresh create_app()

StaticPool keeps a single SQLite connection, so rows committed by fixtures
are visible to the sessions the app opens per request.
"""

import os

# Must be set before linkme.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GEOIP_DB_PATH"] = "/nonexistent/GeoLite2-City.mmdb"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from linkme.database import Base, get_db_session
from linkme.dependencies import get_geo_locator
from linkme.models import Profile, SocialLink, User, ViewEvent
from linkme.services.enrichment import GeoLocator

TEST_JWT_SECRET = "test-secret"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(db_session):
    async def _make(name: str = "Jane Doe", email: Optional[str] = None) -> User:
        user = User(name=name, email=email or f"{uuid4().hex[:10]}@example.com")
        db_session.add(user)
        await db_session.commit()
        return user
    return _make


@pytest.fixture
def make_profile(db_session):
    async def _make(
        user: User,
        slug: Optional[str] = None,
        name: str = "Jane Doe",
        is_active: bool = True,
        view_count: int = 0,
        profile_type: str = "personal",
    ) -> Profile:
        profile = Profile(
            user_id=user.id,
            slug=slug or f"jane-{uuid4().hex[:6]}",
            name=name,
            is_active=is_active,
            view_count=view_count,
            profile_type=profile_type,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile
    return _make


@pytest.fixture
def make_view(db_session):
    async def _make(
        profile: Profile,
        source: str = "direct",
        viewed_at: Optional[datetime] = None,
        **fields,
    ) -> ViewEvent:
        event = ViewEvent(
            profile_id=profile.id,
            view_source=source,
            viewed_at=viewed_at or datetime.now(timezone.utc) - timedelta(minutes=5),
            **fields,
        )
        db_session.add(event)
        await db_session.commit()
        return event
    return _make


@pytest.fixture
def make_link(db_session):
    async def _make(
        profile: Profile,
        platform: str = "linkedin",
        url: str = "https://linkedin.com/in/jane",
        display_order: int = 0,
        is_visible: bool = True,
        click_count: int = 0,
    ) -> SocialLink:
        link = SocialLink(
            profile_id=profile.id,
            platform=platform,
            url=url,
            display_order=display_order,
            is_visible=is_visible,
            click_count=click_count,
        )
        db_session.add(link)
        await db_session.commit()
        return link
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Auth & Enrichment
# ══════════════════════════════════════════════════════════════════════════

def make_token(user_id: UUID, expires_in: int = 3600, secret: str = TEST_JWT_SECRET) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + timedelta(seconds=expires_in)}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def auth_headers():
    def _headers(user_id: UUID) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id)}"}
    return _headers


@pytest.fixture
def geo_reader():
    """A geoip2 Reader stand-in resolving every public address to Berlin, DE."""
    reader = MagicMock()
    response = MagicMock()
    response.country.iso_code = "DE"
    response.registered_country.iso_code = "DE"
    response.city.name = "Berlin"
    reader.city.return_value = response
    return reader


@pytest.fixture
def geo_locator(geo_reader):
    return GeoLocator(geo_reader)


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, geo_locator):
    """
    AsyncClient over a fresh app whose DB and GeoIP dependencies point at the
    test fixtures. Each request gets its own session, committed on success.
    """
    from linkme.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_geo_locator] = lambda: geo_locator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
