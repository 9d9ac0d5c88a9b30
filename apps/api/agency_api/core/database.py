from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from agency_api.core.config import get_settings


logger = logging.getLogger("agency_api.lifecycle")


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str, *, pool_mode: str = "queue") -> AsyncEngine:
    settings = get_settings()
    engine_kwargs: dict[str, object] = {}
    if pool_mode == "null" or database_url.startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_size"] = max(1, settings.db_pool_size)
        engine_kwargs["max_overflow"] = max(0, settings.db_pool_max_overflow)
        engine_kwargs["pool_timeout"] = max(1, settings.db_pool_timeout_seconds)
        engine_kwargs["pool_pre_ping"] = True
    return create_async_engine(database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the process-wide session factory.

    Readers open one short-lived session per query so that concurrent reads within one
    request never share a session.
    """

    global _engine, _session_factory

    if _session_factory is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, pool_mode=settings.db_pool_mode)
        _session_factory = build_session_factory(_engine)
        logger.info("db.pool_initialized", extra={"operation": settings.db_pool_mode})
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
