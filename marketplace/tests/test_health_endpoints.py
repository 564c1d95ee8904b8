from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from marketplace.common import ServiceSettings
from marketplace.pricing_service.app.main import SERVICE_NAME, create_app


@pytest.mark.asyncio
async def test_health_endpoint_returns_ok(tmp_path) -> None:
    settings = ServiceSettings(
        enable_metrics=False,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'health.db'}",
    )
    app = create_app(settings)

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert app.title == SERVICE_NAME


@pytest.mark.asyncio
async def test_metrics_endpoint_is_exposed(tmp_path) -> None:
    settings = ServiceSettings(
        app_name="Pricing Metrics Test",
        enable_metrics=True,
        enable_tracing=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}",
    )
    app = create_app(settings)

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/metrics")

    assert response.status_code == 200
    assert "pricing_quotes_total" in response.text


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
