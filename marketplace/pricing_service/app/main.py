from contextlib import asynccontextmanager

from fastapi import FastAPI

from marketplace.common import (
    DEFAULT_APP_NAME,
    ServiceSettings,
    build_app,
    close_redis_connections,
    configure_logging,
    dispose_engines,
    ensure_schema,
    get_session_factory,
    resolve_database_url,
    resolve_redis,
)

from .api.accommodations import router as accommodations_router
from .api.health import router as health_router
from .api.pricing import router as pricing_router
from .models import Base
from .quote_cache import QuoteCache

SERVICE_NAME = "Pricing Service"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./pricing_service.db"


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Create the Pricing Service FastAPI application."""

    resolved_settings = settings or ServiceSettings()
    if resolved_settings.app_name == DEFAULT_APP_NAME:
        resolved_settings = resolved_settings.model_copy(update={"app_name": SERVICE_NAME})
    configure_logging(resolved_settings)
    database_url = resolve_database_url(resolved_settings, DEFAULT_DATABASE_URL)
    session_factory = get_session_factory(database_url)
    redis_client = resolve_redis(resolved_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if resolved_settings.auto_create_schema:
            await ensure_schema(database_url, Base.metadata)
        app.state.session_factory = session_factory
        app.state.quote_cache = QuoteCache(
            redis_client,
            ttl_seconds=resolved_settings.quote_cache_ttl_seconds,
        )
        try:
            yield
        finally:
            app.state.session_factory = None
            app.state.quote_cache = None
            await dispose_engines()
            if redis_client is not None:
                await close_redis_connections()

    app = build_app(resolved_settings, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(accommodations_router)
    app.include_router(pricing_router)
    return app


app = create_app()
