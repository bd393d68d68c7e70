"""
Shared pytest configuration for backend tests.

By default every test gets a fresh SQLite database in a temporary file
(``sqlite+aiosqlite``). Each session opens its own connection, so tests that
run several sessions concurrently see real transaction isolation.

Set TEST_DATABASE_URL to run against PostgreSQL instead.

SAFETY: a PostgreSQL URL is REFUSED unless the database name contains the
substring "test". This prevents accidental drop of the development or
production database when environment variables are misconfigured.
"""

import os
from datetime import datetime

# Routes read ENV at import time (rate limiter is a no-op under test)
os.environ.setdefault("ENV", "test")

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from backend.database.db import Base
from backend.database.models import Branch, TeamMember
from backend.services import team_service, user_service
from backend.utils.datetime_utils import utcnow


def _resolve_test_database_url(tmp_path) -> str:
    """Build the test database URL with safety checks."""
    url = os.getenv("TEST_DATABASE_URL", "")
    if not url:
        return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n"
            f"{'=' * 70}"
        )
    return url


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine with all tables."""
    url = _resolve_test_database_url(tmp_path)
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    # NullPool: every session gets its own connection
    engine = create_async_engine(url, echo=False, poolclass=NullPool, connect_args=connect_args)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Monkey-patch AsyncSessionLocal to use the test engine
    from backend.database import db

    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """A session on the test database, rolled back and closed after the test."""
    from backend.database import db

    async with db.AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# ============================================================================
# Data helpers
# ============================================================================


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory creating committed users with unique emails."""
    counter = {"n": 0}

    async def _make(first_name="Player", last_name=None):
        counter["n"] += 1
        n = counter["n"]
        return await user_service.create_user(
            session=db_session,
            email=f"user{n}@example.com",
            first_name=first_name,
            last_name=last_name or f"Number{n}",
        )

    return _make


@pytest_asyncio.fixture
async def branch(db_session):
    """An active branch open 08:00-22:00."""
    b = Branch(
        name="Central Arena",
        address="1 Stadium Road",
        operating_hours_start=datetime.strptime("08:00", "%H:%M").time(),
        operating_hours_end=datetime.strptime("22:00", "%H:%M").time(),
        is_active=True,
    )
    db_session.add(b)
    await db_session.commit()
    return b


@pytest_asyncio.fixture
async def make_team(db_session, make_user):
    """
    Factory creating a committed team.

    Returns (team_id, captain_id, member_ids) where member_ids includes the
    captain. ``members`` is the number of members to seat, captain included.
    """

    async def _make(roster_size=5, members=None, name="Team"):
        members = roster_size if members is None else members
        captain_id = await make_user(first_name=f"{name}Captain")
        team = await team_service.create_team(
            db_session, captain_id=captain_id, name=name, roster_size=roster_size
        )
        member_ids = [captain_id]
        for _ in range(members - 1):
            uid = await make_user()
            db_session.add(TeamMember(team_id=team["id"], user_id=uid, joined_at=utcnow()))
            member_ids.append(uid)
        await db_session.commit()
        return team["id"], captain_id, member_ids

    return _make
