"""Dependency wiring for the pricing service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import cast

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace.common import lifespan_session

from .quote_cache import QuoteCacheProtocol
from .repository import PricingRepository
from .services import PricingService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an AsyncSession for the current request lifecycle."""

    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with lifespan_session(session_factory) as session:
        yield session


def get_repository(session: AsyncSession = Depends(get_session)) -> PricingRepository:
    return PricingRepository(session)


def get_quote_cache(request: Request) -> QuoteCacheProtocol | None:
    cache = getattr(request.app.state, "quote_cache", None)
    if cache is None:
        return None
    if hasattr(cache, "get") and hasattr(cache, "set"):
        return cast(QuoteCacheProtocol, cache)
    return None


def get_pricing_service(
    request: Request,
    repository: PricingRepository = Depends(get_repository),
    quote_cache: QuoteCacheProtocol | None = Depends(get_quote_cache),
) -> PricingService:
    settings = getattr(request.app.state, "settings", None)
    default_currency = settings.default_currency if settings is not None else "EUR"
    return PricingService(repository, quote_cache, default_currency=default_currency)
