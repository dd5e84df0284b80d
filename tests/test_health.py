"""Tests for the health endpoint and app wiring."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_protected_routes_require_auth(client: AsyncClient):
    for path in ("/v1/documents", "/v1/recipients", "/v1/dashboard", "/v1/usage/current"):
        resp = await client.get(path)
        assert resp.status_code in (401, 403), path
