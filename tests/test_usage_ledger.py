"""Tests for the usage ledger and both metering stores."""

import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from realtysign.core.plans import catalog_plans
from realtysign.models.plan import SubscriptionPlan
from realtysign.models.tenant import Tenant
from realtysign.models.usage import ResourceKind
from realtysign.services.entitlements import get_plan_for
from realtysign.services.usage_ledger import get_usage_for_period, record_usage
from realtysign.services.usage_store import InMemoryMeteringStore, SqlMeteringStore


async def _tenant(session: AsyncSession) -> uuid.UUID:
    tenant = Tenant(name="Ledger Co", slug=f"ledger-{uuid.uuid4().hex[:8]}")
    session.add(tenant)
    await session.commit()
    return tenant.id


# ── In-memory store ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_n_increments_total_n():
    store = InMemoryMeteringStore()
    tenant_id = uuid.uuid4()

    for _ in range(7):
        await record_usage(store, tenant_id, ResourceKind.DOCUMENT, period="2026-03")

    usage = await get_usage_for_period(store, tenant_id, "2026-03")
    assert usage == {
        ResourceKind.DOCUMENT: 7,
        ResourceKind.ENVELOPE: 0,
        ResourceKind.AI_REQUEST: 0,
    }


@pytest.mark.asyncio
async def test_record_returns_running_total_and_respects_amount():
    store = InMemoryMeteringStore()
    tenant_id = uuid.uuid4()

    assert await record_usage(store, tenant_id, ResourceKind.ENVELOPE, period="2026-03") == 1
    assert await record_usage(store, tenant_id, ResourceKind.ENVELOPE, period="2026-03", amount=4) == 5


@pytest.mark.asyncio
async def test_periods_and_tenants_are_separate():
    store = InMemoryMeteringStore()
    a, b = uuid.uuid4(), uuid.uuid4()

    await record_usage(store, a, ResourceKind.AI_REQUEST, period="2026-03", amount=3)
    await record_usage(store, a, ResourceKind.AI_REQUEST, period="2026-04")
    await record_usage(store, b, ResourceKind.AI_REQUEST, period="2026-03")

    assert (await get_usage_for_period(store, a, "2026-03"))[ResourceKind.AI_REQUEST] == 3
    assert (await get_usage_for_period(store, a, "2026-04"))[ResourceKind.AI_REQUEST] == 1
    assert (await get_usage_for_period(store, b, "2026-03"))[ResourceKind.AI_REQUEST] == 1


@pytest.mark.asyncio
async def test_non_positive_amount_rejected():
    store = InMemoryMeteringStore()
    with pytest.raises(ValueError):
        await record_usage(store, uuid.uuid4(), ResourceKind.DOCUMENT, amount=0)


@pytest.mark.asyncio
async def test_concurrent_increments_memory_store_lose_nothing():
    store = InMemoryMeteringStore()
    tenant_id = uuid.uuid4()
    amounts = [1, 2, 3, 4, 5] * 20

    await asyncio.gather(*(
        record_usage(store, tenant_id, ResourceKind.DOCUMENT, period="2026-05", amount=n)
        for n in amounts
    ))

    usage = await get_usage_for_period(store, tenant_id, "2026-05")
    assert usage[ResourceKind.DOCUMENT] == sum(amounts)


@pytest.mark.asyncio
async def test_memory_alert_claim_is_create_if_absent():
    store = InMemoryMeteringStore()
    tenant_id = uuid.uuid4()

    results = await asyncio.gather(*(
        store.claim_alert(tenant_id, ResourceKind.DOCUMENT, "2026-05", 80) for _ in range(10)
    ))
    assert results.count(True) == 1
    alerts = await store.alerts_for_period(tenant_id, "2026-05")
    assert [(a.resource_kind, a.threshold) for a in alerts] == [("document", 80)]


@pytest.mark.asyncio
async def test_memory_plan_assignment():
    plan = SubscriptionPlan(
        id="mem-plan", name="Mem", price=Decimal("1.00"),
        documents_limit=1, envelopes_limit=1, ai_requests_limit=1, storage_limit=1,
    )
    store = InMemoryMeteringStore([plan])
    tenant_id = uuid.uuid4()

    assert await store.get_tenant_plan_id(tenant_id) is None
    await store.assign_plan(tenant_id, "mem-plan")
    assert await store.get_tenant_plan_id(tenant_id) == "mem-plan"
    assert (await store.get_plan("mem-plan")) is plan


@pytest.mark.asyncio
async def test_bound_memory_store_shares_plans_across_instances(session: AsyncSession):
    """A plan assigned through one process's store is seen by a fresh one."""
    tenant_id = await _tenant(session)
    api_store = InMemoryMeteringStore(catalog_plans())
    await api_store.bind(session).assign_plan(tenant_id, "starter")
    await record_usage(api_store.bind(session), tenant_id, ResourceKind.DOCUMENT, period="2026-04")

    worker_store = InMemoryMeteringStore(catalog_plans()).bind(session)
    assert await worker_store.get_tenant_plan_id(tenant_id) == "starter"
    assert (await get_plan_for(worker_store, tenant_id)).documents_limit == 50

    # Counters stay with the instance that recorded them
    assert (await get_usage_for_period(api_store, tenant_id, "2026-04"))[ResourceKind.DOCUMENT] == 1
    assert (await get_usage_for_period(worker_store, tenant_id, "2026-04"))[ResourceKind.DOCUMENT] == 0


@pytest.mark.asyncio
async def test_bound_memory_store_reads_plans_missing_from_catalog(session: AsyncSession):
    session.add(SubscriptionPlan(
        id="db-only", name="DB only", price=Decimal("5.00"),
        documents_limit=3, envelopes_limit=3, ai_requests_limit=3, storage_limit=1,
    ))
    await session.commit()

    assert await InMemoryMeteringStore(catalog_plans()).get_plan("db-only") is None
    plan = await InMemoryMeteringStore(catalog_plans()).bind(session).get_plan("db-only")
    assert plan is not None
    assert plan.documents_limit == 3


# ── SQL store ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sql_upsert_accumulates_into_one_row(session: AsyncSession):
    tenant_id = await _tenant(session)
    store = SqlMeteringStore(session)

    assert await record_usage(store, tenant_id, ResourceKind.DOCUMENT, period="2026-06") == 1
    assert await record_usage(store, tenant_id, ResourceKind.DOCUMENT, period="2026-06", amount=2) == 3
    await record_usage(store, tenant_id, ResourceKind.AI_REQUEST, period="2026-06")

    usage = await get_usage_for_period(store, tenant_id, "2026-06")
    assert usage[ResourceKind.DOCUMENT] == 3
    assert usage[ResourceKind.AI_REQUEST] == 1
    assert usage[ResourceKind.ENVELOPE] == 0


@pytest.mark.asyncio
async def test_sql_usage_for_unused_period_is_zero(session: AsyncSession):
    tenant_id = await _tenant(session)
    usage = await get_usage_for_period(SqlMeteringStore(session), tenant_id, "1999-01")
    assert set(usage.values()) == {0}


@pytest.mark.asyncio
async def test_sql_alert_claimed_once(session: AsyncSession):
    tenant_id = await _tenant(session)
    store = SqlMeteringStore(session)

    assert await store.claim_alert(tenant_id, ResourceKind.ENVELOPE, "2026-06", 90) is True
    assert await store.claim_alert(tenant_id, ResourceKind.ENVELOPE, "2026-06", 90) is False
    assert await store.claim_alert(tenant_id, ResourceKind.ENVELOPE, "2026-07", 90) is True

    alerts = await store.alerts_for_period(tenant_id, "2026-06")
    assert len(alerts) == 1
    assert alerts[0].threshold == 90


@pytest.mark.asyncio
async def test_sql_assign_plan(session: AsyncSession):
    tenant_id = await _tenant(session)
    store = SqlMeteringStore(session)

    assert await store.get_tenant_plan_id(tenant_id) is None
    await store.assign_plan(tenant_id, "professional")
    assert await store.get_tenant_plan_id(tenant_id) == "professional"
    plan = await store.get_plan("professional")
    assert plan is not None
    assert plan.envelopes_limit == 500


@pytest.mark.asyncio
async def test_sql_concurrent_increments_lose_nothing(tmp_path):
    """Separate connections racing on one key all land in the counter."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as sess:
        tenant_id = await _tenant(sess)

    async def _increment(amount: int) -> None:
        async with factory() as sess:
            await record_usage(
                SqlMeteringStore(sess), tenant_id, ResourceKind.DOCUMENT, period="2026-08", amount=amount
            )

    amounts = [1, 2, 3] * 10
    try:
        await asyncio.gather(*(_increment(n) for n in amounts))
        async with factory() as sess:
            usage = await get_usage_for_period(SqlMeteringStore(sess), tenant_id, "2026-08")
    finally:
        await engine.dispose()

    assert usage[ResourceKind.DOCUMENT] == sum(amounts)
