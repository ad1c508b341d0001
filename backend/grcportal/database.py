"""Async engine and per-request sessions."""
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from grcportal.config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# SQLite: WAL + busy timeout for concurrent reads/writes.
# foreign_keys is off by default in SQLite; risk_controls relies on ON DELETE CASCADE
# and framework_controls on ON DELETE SET NULL.
_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


def _pool_options() -> dict:
    if _is_sqlite:
        return {}
    return {"pool_size": 5, "max_overflow": 10}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    **_pool_options(),
)

if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _apply_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
        cursor.close()

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; routers commit explicitly, anything uncommitted is rolled back."""
    async with async_session() as session:
        yield session


async def check_db_connection() -> bool:
    """Run SELECT 1 against the configured database. Raises on failure."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.debug("Database reachable (%s)", engine.dialect.name)
    return True
