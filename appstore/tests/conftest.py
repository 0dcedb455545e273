"""Shared test fixtures for the app store test suite.

Uses an in-memory SQLite database with StaticPool so all sessions share the
same connection (committed data is visible across sessions).
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from appstore.database import Base, get_db
from appstore.main import app
from appstore.models import *  # noqa: ensure all models are loaded for create_all


# ---------------------------------------------------------------------------
# In-memory SQLite test engine (shared via StaticPool)
# ---------------------------------------------------------------------------

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Auto-use: create/drop tables for every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
async def _setup_db(monkeypatch):
    """Create all tables before each test, drop after.

    Background tasks open their own sessions through ``appstore.database.async_session``;
    point that at the test engine too.
    """
    from appstore import database
    from appstore.core.async_tasks import drain_background_tasks

    monkeypatch.setattr(database, "async_session", TestSession)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await drain_background_tasks()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Yield a fresh AsyncSession for direct service-layer tests."""
    async with TestSession() as session:
        yield session


@pytest.fixture
async def client():
    """httpx AsyncClient wired to the FastAPI app with test DB override."""
    import httpx

    async def _override_get_db():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

def _new_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_header():
    """Return a callable that builds an Authorization header from a JWT."""
    def _build(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _build


@pytest.fixture
def make_profile(db: AsyncSession):
    """Factory fixture: create a Profile and return (profile, jwt_token)."""
    from appstore.core.auth import create_access_token
    from appstore.models.profile import Profile

    async def _make(role: str = "user", full_name: str = None, **kwargs):
        profile_id = _new_id()
        profile = Profile(
            id=profile_id,
            email=kwargs.pop("email", f"user-{profile_id[:8]}@example.com"),
            full_name=full_name or f"Test User {profile_id[:4]}",
            role=role,
            **kwargs,
        )
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
        token = create_access_token(profile.id, role)
        return profile, token

    return _make


@pytest.fixture
def make_category(db: AsyncSession):
    """Factory fixture: create a Category."""
    from appstore.models.category import Category

    async def _make(name: str = "Productivity", slug: str = None, **kwargs):
        category = Category(
            id=_new_id(),
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            **kwargs,
        )
        db.add(category)
        await db.commit()
        await db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_app(db: AsyncSession):
    """Factory fixture: create an App.

    ``age_minutes`` backdates ``created_at`` so ordering tests do not depend
    on clock resolution. ``screenshots`` is a list of (sort_order, url).
    """
    from appstore.models.app import App, AppScreenshot

    async def _make(
        developer_id: str,
        category_id: str,
        name: str = None,
        status: str = "published",
        price_usd: float = 0,
        age_minutes: int = 0,
        screenshots: list[tuple[int, str]] = None,
        **kwargs,
    ):
        app_id = _new_id()
        name = name or f"App {app_id[:6]}"
        app_row = App(
            id=app_id,
            developer_id=developer_id,
            category_id=category_id,
            name=name,
            slug=kwargs.pop("slug", f"{name.lower().replace(' ', '-')}-{app_id[:6]}"),
            short_description=kwargs.pop("short_description", f"{name} in a sentence"),
            price_usd=Decimal(str(price_usd)),
            is_free=price_usd == 0,
            status=status,
            created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
            **kwargs,
        )
        for sort_order, url in screenshots or []:
            app_row.screenshots.append(AppScreenshot(image_url=url, sort_order=sort_order))
        db.add(app_row)
        await db.commit()
        await db.refresh(app_row)
        return app_row

    return _make


@pytest.fixture
def make_review(db: AsyncSession):
    """Factory fixture: insert a Review row directly, bypassing the aggregate."""
    from appstore.models.review import Review

    async def _make(app_id: str, user_id: str, rating: int = 5, **kwargs):
        review = Review(id=_new_id(), app_id=app_id, user_id=user_id, rating=rating, **kwargs)
        db.add(review)
        await db.commit()
        await db.refresh(review)
        return review

    return _make


@pytest.fixture
async def catalog_owner(make_profile, make_category):
    """A developer and a category most catalog tests build on."""
    developer, token = await make_profile(role="developer", full_name="Dev One")
    category = await make_category("Productivity")
    return developer, category, token
