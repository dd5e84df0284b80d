"""Tests for signup, plan changes, the plan catalog and usage endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from realtysign.core.security import create_jwt
from realtysign.models.usage import ResourceKind
from realtysign.services.usage_alerts import record_and_alert
from realtysign.services.usage_ledger import record_usage
from realtysign.services.usage_store import SqlMeteringStore


async def _bootstrap(client: AsyncClient, slug: str) -> tuple[dict, dict]:
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"{slug} Realty",
        "tenant_slug": slug,
        "brokerage": "Keystone Brokers",
        "owner_email": f"owner@{slug}.com",
        "owner_password": "testpass123",
    })
    assert resp.status_code == 201
    data = resp.json()
    return {"Authorization": f"Bearer {data['access_token']}"}, data


@pytest.mark.asyncio
async def test_signup_assigns_default_plan(client: AsyncClient):
    headers, data = await _bootstrap(client, "tn-signup")
    assert data["tenant"]["plan_id"] == "starter"
    assert data["tenant"]["brokerage"] == "Keystone Brokers"

    resp = await client.get("/v1/tenants/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["slug"] == "tn-signup"


@pytest.mark.asyncio
async def test_duplicate_slug_conflicts(client: AsyncClient):
    await _bootstrap(client, "tn-dup")
    resp = await client.post("/v1/tenants", json={
        "tenant_name": "Other",
        "tenant_slug": "tn-dup",
        "owner_email": "someone@else.com",
        "owner_password": "testpass123",
    })
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_change_plan(client: AsyncClient):
    headers, _ = await _bootstrap(client, "tn-upgrade")

    resp = await client.put("/v1/tenants/me/plan", json={"plan_id": "professional"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["plan_id"] == "professional"

    usage = (await client.get("/v1/usage/current", headers=headers)).json()
    assert usage["plan_id"] == "professional"
    assert usage["envelope"]["limit"] == 500


@pytest.mark.asyncio
async def test_change_to_unknown_plan_404(client: AsyncClient):
    headers, _ = await _bootstrap(client, "tn-bad-plan")
    resp = await client.put("/v1/tenants/me/plan", json={"plan_id": "platinum"}, headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_member_cannot_change_plan(client: AsyncClient):
    _, data = await _bootstrap(client, "tn-member")
    token = create_jwt(
        subject=data["tenant"]["id"],  # any uuid will do for a role check
        tenant_id=data["tenant"]["id"],
        role="member",
    )
    resp = await client.put(
        "/v1/tenants/me/plan",
        json={"plan_id": "brokerage"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_plan_catalog_ordered_by_price(client: AsyncClient):
    resp = await client.get("/v1/plans")
    assert resp.status_code == 200
    plans = resp.json()
    ids = [p["id"] for p in plans]
    assert ids.index("starter") < ids.index("professional") < ids.index("brokerage")

    starter = next(p for p in plans if p["id"] == "starter")
    assert starter["documents_limit"] == 50
    assert starter["ai_requests_limit"] == 100
    assert "ai_parsing" in starter["features"]

    # Served from cache the second time
    assert (await client.get("/v1/plans")).json() == plans


@pytest.mark.asyncio
async def test_current_usage_starts_empty(client: AsyncClient):
    headers, _ = await _bootstrap(client, "tn-usage")

    resp = await client.get("/v1/usage/current", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["plan_id"] == "starter"
    assert data["document"] == {"current": 0, "limit": 50, "percentage": 0}
    assert data["ai_request"]["limit"] == 100


@pytest.mark.asyncio
async def test_usage_check_action(client: AsyncClient):
    headers, _ = await _bootstrap(client, "tn-check")

    resp = await client.get("/v1/usage/check/upload_document", headers=headers)
    assert resp.json() == {"action": "upload_document", "allowed": True, "message": None}

    resp = await client.get("/v1/usage/check/teleport", headers=headers)
    assert resp.json()["allowed"] is False
    assert resp.json()["message"] == "Invalid action type"


@pytest.mark.asyncio
async def test_alerts_listed_after_threshold(client: AsyncClient, session):
    headers, data = await _bootstrap(client, "tn-alerts")
    tenant_id = uuid.UUID(data["tenant"]["id"])
    assert (await client.get("/v1/usage/alerts", headers=headers)).json() == []

    store = SqlMeteringStore(session)
    await record_usage(store, tenant_id, ResourceKind.ENVELOPE, amount=44)
    await record_and_alert(store, session, tenant_id, ResourceKind.ENVELOPE)  # 45/50 = 90%

    alerts = (await client.get("/v1/usage/alerts", headers=headers)).json()
    assert sorted((a["resource_kind"], a["threshold"]) for a in alerts) == [
        ("envelope", 80),
        ("envelope", 90),
    ]
