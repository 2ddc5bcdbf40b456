"""Basic API smoke tests — health, error envelope."""

import pytest


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert "error" in r.json()


@pytest.mark.asyncio
async def test_shops_list_empty(client):
    r = await client.get("/api/shops")
    assert r.status_code == 200
    assert r.json() == {"total": 0, "items": []}


@pytest.mark.asyncio
async def test_products_list_empty(client):
    r = await client.get("/api/products")
    assert r.status_code == 200
    assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    r = await client.get("/health", headers={"X-Request-ID": "req-42"})
    assert r.headers["x-request-id"] == "req-42"

    r = await client.get("/health")
    assert len(r.headers["x-request-id"]) == 32
