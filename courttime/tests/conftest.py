"""
Shared pytest configuration for backend tests.

Runs against PostgreSQL when TEST_DATABASE_URL is set, otherwise against an
in-memory SQLite database (aiosqlite) created fresh for every test.

SAFETY: When a PostgreSQL URL is given, this module REFUSES to run against
any database whose name does not contain the substring "test".  This
prevents accidental truncation of the development or production database
when environment variables are misconfigured.
"""

import os

# Rate limiting is disabled when ENV=test; must be set before the app is imported.
os.environ.setdefault("ENV", "test")

import asyncio
from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text
from courttime.database.db import Base
from courttime.database.models import Court, Facility
from courttime.services import user_service

SQLITE_URL = "sqlite+aiosqlite:///:memory:"


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if a PostgreSQL URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", "")
    if not url:
        return SQLITE_URL

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Fix: set TEST_DATABASE_URL to a test database, e.g.:\n"
            f"    export TEST_DATABASE_URL=postgresql+asyncpg://.../courttime_test\n"
            f"  Or unset it to run against in-memory SQLite.\n"
            f"{'=' * 70}"
        )

    return url


# Validated at import time so pytest fails immediately with a clear message
TEST_DATABASE_URL = _resolve_test_database_url()
IS_SQLITE = TEST_DATABASE_URL.startswith("sqlite")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with all tables."""
    if IS_SQLITE:
        # One shared connection, so the in-memory database lives for the whole test
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        # NullPool avoids "Future attached to different loop" errors
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=NullPool,
            pool_pre_ping=True,
        )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    try:
        await asyncio.sleep(0.05)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()


async def _truncate_postgres_tables(engine) -> None:
    async with engine.connect() as truncate_conn:
        async with truncate_conn.begin():
            result = await truncate_conn.execute(
                text("""
                    SELECT tablename FROM pg_tables
                    WHERE schemaname = 'public'
                    AND tablename NOT LIKE 'pg_%'
                    AND tablename NOT LIKE 'alembic_%'
                    ORDER BY tablename
                """)
            )
            tables = [row[0] for row in result.fetchall()]
            if tables:
                table_list = ", ".join(f'"{table}"' for table in tables)
                await truncate_conn.execute(
                    text(f"TRUNCATE TABLE {table_list} RESTART IDENTITY CASCADE")
                )


@pytest_asyncio.fixture
async def db_session(test_engine):
    """
    Create a test database session.
    PostgreSQL tables are truncated before each test; SQLite starts empty.
    """
    if not IS_SQLITE:
        await _truncate_postgres_tables(test_engine)

    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# ---------------------------------------------------------------------------
# Shared domain fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def facility(db_session):
    """A facility with no courts."""
    facility = Facility(
        id="sunrise-valley",
        name="Sunrise Valley HOA",
        type="HOA Tennis & Pickleball Courts",
        address="100 Valley Rd",
    )
    db_session.add(facility)
    await db_session.flush()
    return facility


@pytest_asyncio.fixture
async def court(db_session, facility):
    """Court 1 at the facility."""
    court = Court(facility_id=facility.id, name="Court 1", court_number=1, court_type="Tennis")
    db_session.add(court)
    await db_session.flush()
    return court


@pytest_asyncio.fixture
async def second_court(db_session, facility):
    """Court 2 at the facility."""
    court = Court(facility_id=facility.id, name="Court 2", court_number=2, court_type="Pickleball")
    db_session.add(court)
    await db_session.flush()
    return court


@pytest_asyncio.fixture
async def player(db_session):
    """A player account; returns the user id."""
    return await user_service.create_user(
        db_session,
        email="player@example.com",
        password_hash="hashed_password",
        full_name="Pat Player",
    )


@pytest_asyncio.fixture
async def other_player(db_session):
    """A second player account; returns the user id."""
    return await user_service.create_user(
        db_session,
        email="other@example.com",
        password_hash="hashed_password",
        full_name="Olive Other",
    )


@pytest.fixture
def booking_day():
    """A date comfortably in the future, as YYYY-MM-DD."""
    return (date.today() + timedelta(days=30)).isoformat()
