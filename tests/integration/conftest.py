from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.integration_db_safety import assert_safe_integration_db
from app.db.models import Base
from app.db.session import build_engine, build_session_factory

TRUNCATE_TABLES = (
    "codes",
    "orders",
    "reviews",
    "products",
    "users",
    "categories",
    "payment_methods",
    "store_settings",
    "inventory_audit_runs",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> str:
    database_url = get_settings().database_url
    if make_url(database_url).get_backend_name() != "postgresql":
        pytest.skip("Integration tests need DATABASE_URL pointing at a PostgreSQL test database")
    assert_safe_integration_db(database_url)
    return database_url


@pytest.fixture
async def pg_session_factory(guard_integration_db_target: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    # A fresh engine per test keeps asyncpg connections on the running event loop.
    engine = build_engine(guard_integration_db_target)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        await engine.dispose()
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(TRUNCATE_SQL))

    yield build_session_factory(engine)

    await engine.dispose()
