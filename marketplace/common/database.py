"""Async SQLAlchemy helpers shared across marketplace services."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import ServiceSettings

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, async_sessionmaker[AsyncSession]] = {}


def create_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create or reuse a cached AsyncEngine for the given URL."""

    engine = _ENGINE_CACHE.get(database_url)
    if engine is None:
        engine = create_async_engine(database_url, pool_pre_ping=True, **kwargs)
        _ENGINE_CACHE[database_url] = engine
    return engine


def get_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Return an async_sessionmaker bound to the cached engine."""

    factory = _SESSION_FACTORY_CACHE.get(database_url)
    if factory is None:
        factory = async_sessionmaker(create_engine(database_url), expire_on_commit=False)
        _SESSION_FACTORY_CACHE[database_url] = factory
    return factory


async def ensure_schema(database_url: str, metadata: MetaData) -> None:
    """Create missing tables for ``metadata``; existing tables are left alone."""

    async with create_engine(database_url).begin() as conn:
        await conn.run_sync(metadata.create_all)


@asynccontextmanager
async def lifespan_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    session = session_factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


def resolve_database_url(settings: ServiceSettings, fallback: str) -> str:
    return settings.database_url or fallback


async def dispose_engines() -> None:
    """Dispose all cached engines on shutdown."""

    for engine in _ENGINE_CACHE.values():
        await engine.dispose()
    _ENGINE_CACHE.clear()
    _SESSION_FACTORY_CACHE.clear()
