"""
Shared test fixtures with in-memory SQLite async database + httpx AsyncClient.

Strategy:
1. Set DATABASE_URL to SQLite before grcportal is imported
2. Route every request through one in-memory engine via dependency override
3. Create / drop the schema around each test
"""
import os
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ── 1. Environment ──
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DEBUG"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

# ── 2. Test engine (SQLite in-memory, one shared connection) ──
TEST_ENGINE = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSession = async_sessionmaker(
    TEST_ENGINE,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── 3. FK enforcement so ON DELETE CASCADE / SET NULL behave as in production ──
@event.listens_for(TEST_ENGINE.sync_engine, "connect")
def _enable_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ── 4. Import the app and point get_session at the test engine ──
from grcportal.database import get_session  # noqa: E402
from grcportal.main import app as fastapi_app  # noqa: E402
from grcportal.models import Base, Control  # noqa: E402


async def _test_get_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestSession() as session:
        yield session


fastapi_app.dependency_overrides[get_session] = _test_get_session


# ── Fixtures ──

@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create all tables before each test, drop after."""
    async with TEST_ENGINE.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with TEST_ENGINE.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSession() as session:
        yield session


# ── Seed data helpers ──

@pytest_asyncio.fixture
async def seed_controls(db: AsyncSession) -> dict[str, Control]:
    """Three catalog controls keyed by control_id."""
    rows = [
        Control(
            control_id="GOV-01", source="SCF", domain="Governance",
            name="Security Governance Program",
            description="Mechanisms exist to facilitate governance controls.",
            nist_800_53="PM-1",
        ),
        Control(
            control_id="IAC-01", source="SCF", domain="Identification & Authentication",
            name="Identity & Access Management",
            description="Mechanisms exist to facilitate identification controls.",
            nist_800_53="IA-1",
        ),
        Control(
            control_id="CIS-1.1", source="CIS", domain="Asset Inventory",
            name="Enterprise Asset Inventory",
            description="Maintain an inventory of all enterprise assets, including those with network access.",
        ),
    ]
    db.add_all(rows)
    await db.commit()
    return {c.control_id: c for c in rows}
