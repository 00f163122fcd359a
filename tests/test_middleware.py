"""Tests for middleware components."""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from routeflow.config import get_settings
from routeflow.main import app
from routeflow.middleware import CorrelationIdMiddleware, ErrorHandlerMiddleware, get_correlation_id

settings = get_settings()


@pytest.mark.asyncio
async def test_correlation_id_generated():
    """A correlation ID is generated when the caller sends none."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/templates/categories")
        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"]


@pytest.mark.asyncio
async def test_correlation_id_preserved():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/v1/rules/validate",
            json={"rules": []},
            headers={"X-Correlation-ID": "test-correlation-123"},
        )
        assert response.headers["X-Correlation-ID"] == "test-correlation-123"


@pytest.mark.asyncio
async def test_payload_too_large_rejection():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/v1/rules/validate",
            json={"rules": [], "padding": "x" * (settings.MAX_REQUEST_SIZE + 1000)},
        )
        assert response.status_code == 413
        data = response.json()
        assert data["error"] == "PayloadTooLarge"
        assert data["max_size"] == settings.MAX_REQUEST_SIZE


@pytest.mark.asyncio
async def test_invalid_json_rejection():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/v1/rules/evaluate",
            content=b"{invalid json}",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidJSON"


@pytest.mark.asyncio
async def test_missing_required_fields():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/v1/graph/reconstruct", json={"graph": {"nodes": [], "edges": []}})
        assert response.status_code == 422


def test_unhandled_exception_is_structured():
    """Unhandled errors become a JSON 500 carrying the correlation ID."""
    probe = FastAPI()
    probe.add_middleware(ErrorHandlerMiddleware)
    probe.add_middleware(CorrelationIdMiddleware)

    @probe.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @probe.get("/whoami")
    async def whoami():
        return {"correlation_id": get_correlation_id()}

    client = TestClient(probe, raise_server_exceptions=False)

    assert client.get("/whoami", headers={"X-Correlation-ID": "abc"}).json() == {"correlation_id": "abc"}

    response = client.get("/boom", headers={"X-Correlation-ID": "corr-1"})
    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "InternalServerError"
    assert data["correlation_id"] == "corr-1"
    assert data["path"] == "/boom"
