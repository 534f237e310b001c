"""
HTTP layer tests. Lifespan is not started; the cache is swapped per test.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

import app.main as main_module
from app.cache.inventory_cache import CacheResponse
from app.errors import UpstreamError


@pytest.fixture
def client():
    return TestClient(main_module.app)


def fake_cache(response=None, error=None, triggered=True):
    cache = MagicMock()
    if error is not None:
        cache.get = AsyncMock(side_effect=error)
    else:
        cache.get = AsyncMock(return_value=response)
    cache.trigger_revalidation = MagicMock(return_value=triggered)
    return cache


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "Inventory Cache"


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_ready_reports_cache_status(client):
    body = client.get("/ready").json()

    assert "cache" in body
    assert body["cache"]["state"] in ("empty", "fresh", "stale")
    assert "veeqo" in body["services"]


def test_get_inventory_serves_cache(client):
    data = MagicMock()
    data.to_dict.return_value = {"products": [], "totalProducts": 0}
    cached = CacheResponse(
        data=data,
        cached=True,
        stale=False,
        revalidating=False,
        cached_at=0.0,
        cache_age_seconds=42,
    )

    with patch.object(main_module, "inventory_cache", fake_cache(response=cached)):
        response = client.get("/api/inventory")

    assert response.status_code == 200
    assert response.json() == {
        "data": {"products": [], "totalProducts": 0},
        "cached": True,
        "stale": False,
        "revalidating": False,
        "cachedAt": "1970-01-01T00:00:00.000Z",
        "cacheAge": "42 seconds",
    }


def test_get_inventory_upstream_failure(client):
    error = UpstreamError("Failed to fetch page 1: HTTP 503", status=503)

    with patch.object(main_module, "inventory_cache", fake_cache(error=error)):
        response = client.get("/api/inventory")

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to fetch inventory data",
        "message": "Failed to fetch page 1: HTTP 503",
    }


def test_manual_revalidation(client):
    cache = fake_cache(triggered=True)

    with patch.object(main_module, "inventory_cache", cache):
        response = client.post("/api/inventory/revalidate")

    assert response.status_code == 200
    assert response.json() == {
        "message": "Cache revalidation triggered",
        "isRevalidating": True,
    }
    cache.trigger_revalidation.assert_called_once()


@pytest.mark.asyncio
async def test_shutdown_cancels_refresh_before_closing_session():
    calls = []
    cache = MagicMock()
    cache.close = AsyncMock(side_effect=lambda: calls.append("cache"))
    service = MagicMock()
    service.initialize = AsyncMock()
    service.close = AsyncMock(side_effect=lambda: calls.append("session"))
    staleness_scheduler = MagicMock()
    staleness_scheduler.stop = AsyncMock(side_effect=lambda: calls.append("scheduler"))

    with patch.object(main_module, "inventory_cache", cache), \
         patch.object(main_module, "veeqo_service", service), \
         patch.object(main_module, "scheduler", staleness_scheduler), \
         patch.object(main_module, "initialize_sentry"):
        async with main_module.lifespan(main_module.app):
            staleness_scheduler.start.assert_called_once()

    assert calls == ["scheduler", "cache", "session"]
