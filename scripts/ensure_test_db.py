from __future__ import annotations

import asyncio
import re

import asyncpg
from sqlalchemy.engine import make_url

from app.core.config import get_settings
from app.core.integration_db_safety import assert_safe_integration_db
from app.db.models import Base
from app.db.session import build_engine

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


async def _ensure_database_exists(database_url: str) -> bool:
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    if IDENTIFIER_RE.fullmatch(db_name) is None:
        raise RuntimeError(
            f"Unsupported database name '{db_name}'. "
            "Only [A-Za-z0-9_] identifiers are supported."
        )
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")

    conn = await asyncpg.connect(
        host=parsed.host or "localhost",
        port=int(parsed.port or 5432),
        user=parsed.username,
        password=parsed.password,
        database="postgres",
    )
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name):
            return False
        await conn.execute(f'CREATE DATABASE "{db_name}"')
        return True
    finally:
        await conn.close()


async def _create_schema(database_url: str) -> None:
    engine = build_engine(database_url)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


async def _prepare(database_url: str) -> None:
    created = await _ensure_database_exists(database_url)
    await _create_schema(database_url)
    parsed = make_url(database_url)
    print(  # noqa: T201
        f"ensure_test_db: {'created' if created else 'exists'} "
        f"db={parsed.database} host={parsed.host}:{parsed.port or 5432} tables={len(Base.metadata.tables)}"
    )


def main() -> int:
    database_url = get_settings().database_url
    # Same guard as the integration suite: only a local *test* PostgreSQL database.
    assert_safe_integration_db(database_url)
    asyncio.run(_prepare(database_url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
