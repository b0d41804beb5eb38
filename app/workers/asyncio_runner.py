from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.db.session import build_engine, build_session_factory

T = TypeVar("T")

AsyncJob = Callable[[async_sessionmaker[AsyncSession]], Awaitable[T]]


async def _run_with_fresh_engine(job: AsyncJob[T], settings: Settings) -> T:
    # Pooled connections are bound to the loop that opened them.
    engine = build_engine(settings.database_url, echo=settings.db_echo)
    try:
        return await job(build_session_factory(engine))
    finally:
        await engine.dispose()


def run_async_job(job: AsyncJob[T], *, settings: Settings | None = None) -> T:
    return asyncio.run(_run_with_fresh_engine(job, settings or get_settings()))
