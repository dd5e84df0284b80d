"""Metering storage — one interface, a SQL and an in-memory implementation.

Usage counters and alert facts are the only state shared by concurrent
requests, so every mutation here is a single atomic operation: an
upsert-and-add for counters, an insert-if-absent for alert claims. No
read-then-write happens in application code.
"""

from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from realtysign.core.config import get_settings
from realtysign.core.plans import catalog_plans
from realtysign.models.base import new_uuid, utcnow
from realtysign.models.plan import SubscriptionPlan
from realtysign.models.tenant import Tenant
from realtysign.models.usage import ResourceKind, UsageAlert, UsageRecord

logger = logging.getLogger(__name__)


def empty_usage() -> dict[ResourceKind, int]:
    return {kind: 0 for kind in ResourceKind}


class MeteringStore(ABC):
    """Capabilities the ledger, entitlements and alert tracker rely on."""

    @abstractmethod
    async def increment_usage(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, amount: int
    ) -> int:
        """Create the counter with ``amount`` or atomically add to it. Returns the new total."""

    @abstractmethod
    async def usage_for_period(self, tenant_id: uuid.UUID, period: str) -> dict[ResourceKind, int]:
        """Counts for every resource kind; absent kinds are 0."""

    @abstractmethod
    async def get_tenant_plan_id(self, tenant_id: uuid.UUID) -> str | None: ...

    @abstractmethod
    async def assign_plan(self, tenant_id: uuid.UUID, plan_id: str | None) -> None: ...

    @abstractmethod
    async def get_plan(self, plan_id: str) -> SubscriptionPlan | None: ...

    @abstractmethod
    async def claim_alert(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, threshold: int
    ) -> bool:
        """Record the alert fact if absent. True only for the caller that created it."""

    @abstractmethod
    async def alerts_for_period(self, tenant_id: uuid.UUID, period: str) -> list[UsageAlert]: ...


# ── SQL ──────────────────────────────────────────────────────


def _dialect_insert(session: AsyncSession):
    """Return the dialect-specific ``insert`` that supports ON CONFLICT."""
    bind = session.get_bind()
    dialect_name = getattr(getattr(bind, "dialect", None), "name", "")
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as _pg_insert

        return _pg_insert
    from sqlalchemy.dialects.sqlite import insert as _sqlite_insert

    return _sqlite_insert


class SqlMeteringStore(MeteringStore):
    """Store backed by the request's (or job's) database session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def increment_usage(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, amount: int
    ) -> int:
        insert = _dialect_insert(self.session)
        now = utcnow()
        stmt = insert(UsageRecord).values(
            id=new_uuid(),
            tenant_id=tenant_id,
            resource_kind=str(kind),
            period=period,
            count=amount,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id", "resource_kind", "period"],
            set_={
                "count": UsageRecord.count + stmt.excluded["count"],
                "updated_at": now,
            },
        ).returning(UsageRecord.count)
        result = await self.session.execute(stmt)
        total = result.scalar_one()
        await self.session.commit()
        return total

    async def usage_for_period(self, tenant_id: uuid.UUID, period: str) -> dict[ResourceKind, int]:
        stmt = (
            select(UsageRecord.resource_kind, func.sum(UsageRecord.count))
            .where(UsageRecord.tenant_id == tenant_id, UsageRecord.period == period)
            .group_by(UsageRecord.resource_kind)
        )
        usage = empty_usage()
        for resource_kind, total in (await self.session.execute(stmt)).all():
            try:
                usage[ResourceKind(resource_kind)] = int(total or 0)
            except ValueError:
                logger.warning("Ignoring unknown resource kind %r for tenant %s", resource_kind, tenant_id)
        return usage

    async def get_tenant_plan_id(self, tenant_id: uuid.UUID) -> str | None:
        result = await self.session.execute(select(Tenant.plan_id).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    async def assign_plan(self, tenant_id: uuid.UUID, plan_id: str | None) -> None:
        await self.session.execute(
            update(Tenant)
            .where(Tenant.id == tenant_id)
            .values(plan_id=plan_id, updated_at=utcnow())
        )
        await self.session.commit()

    async def get_plan(self, plan_id: str) -> SubscriptionPlan | None:
        return await self.session.get(SubscriptionPlan, plan_id)

    async def claim_alert(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, threshold: int
    ) -> bool:
        insert = _dialect_insert(self.session)
        stmt = (
            insert(UsageAlert)
            .values(
                id=new_uuid(),
                tenant_id=tenant_id,
                resource_kind=str(kind),
                period=period,
                threshold=threshold,
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(
                index_elements=["tenant_id", "resource_kind", "period", "threshold"],
            )
            .returning(UsageAlert.id)
        )
        result = await self.session.execute(stmt)
        claimed = result.scalar_one_or_none() is not None
        await self.session.commit()
        return claimed

    async def alerts_for_period(self, tenant_id: uuid.UUID, period: str) -> list[UsageAlert]:
        stmt = (
            select(UsageAlert)
            .where(UsageAlert.tenant_id == tenant_id, UsageAlert.period == period)
            .order_by(UsageAlert.resource_kind, UsageAlert.threshold)
        )
        return list((await self.session.execute(stmt)).scalars().all())


# ── In-memory ────────────────────────────────────────────────


class InMemoryMeteringStore(MeteringStore):
    """Process-local counters and alert facts for development without a metering database.

    No method awaits between reading and writing its dictionaries, so each
    mutation is atomic with respect to other coroutines on the loop.

    Bound to a session (see ``bind``), tenant plan assignments live on
    ``Tenant.plan_id`` and plan ids missing from the catalog are read from
    the plans table. Unbound, the store owns its tenants and keeps
    assignments in memory.
    """

    def __init__(
        self,
        plans: Iterable[SubscriptionPlan] = (),
        session: AsyncSession | None = None,
    ) -> None:
        self._usage: dict[tuple[uuid.UUID, ResourceKind, str], int] = {}
        self._alerts: dict[tuple[uuid.UUID, ResourceKind, str, int], datetime] = {}
        self._plans: dict[str, SubscriptionPlan] = {plan.id: plan for plan in plans}
        self._tenant_plans: dict[uuid.UUID, str | None] = {}
        self.session = session

    def bind(self, session: AsyncSession) -> "InMemoryMeteringStore":
        """A view sharing this store's counters, with tenant state read through ``session``."""
        view = copy.copy(self)
        view.session = session
        return view

    def add_plan(self, plan: SubscriptionPlan) -> None:
        self._plans[plan.id] = plan

    async def increment_usage(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, amount: int
    ) -> int:
        key = (tenant_id, ResourceKind(kind), period)
        self._usage[key] = self._usage.get(key, 0) + amount
        return self._usage[key]

    async def usage_for_period(self, tenant_id: uuid.UUID, period: str) -> dict[ResourceKind, int]:
        usage = empty_usage()
        for kind in ResourceKind:
            usage[kind] = self._usage.get((tenant_id, kind, period), 0)
        return usage

    async def get_tenant_plan_id(self, tenant_id: uuid.UUID) -> str | None:
        if self.session is not None:
            return await SqlMeteringStore(self.session).get_tenant_plan_id(tenant_id)
        return self._tenant_plans.get(tenant_id)

    async def assign_plan(self, tenant_id: uuid.UUID, plan_id: str | None) -> None:
        if self.session is not None:
            await SqlMeteringStore(self.session).assign_plan(tenant_id, plan_id)
            return
        self._tenant_plans[tenant_id] = plan_id

    async def get_plan(self, plan_id: str) -> SubscriptionPlan | None:
        plan = self._plans.get(plan_id)
        if plan is None and self.session is not None:
            plan = await SqlMeteringStore(self.session).get_plan(plan_id)
        return plan

    async def claim_alert(
        self, tenant_id: uuid.UUID, kind: ResourceKind, period: str, threshold: int
    ) -> bool:
        key = (tenant_id, ResourceKind(kind), period, threshold)
        if key in self._alerts:
            return False
        self._alerts[key] = utcnow()
        return True

    async def alerts_for_period(self, tenant_id: uuid.UUID, period: str) -> list[UsageAlert]:
        return [
            UsageAlert(
                tenant_id=tid,
                resource_kind=str(kind),
                period=p,
                threshold=threshold,
                created_at=created_at,
            )
            for (tid, kind, p, threshold), created_at in sorted(
                self._alerts.items(), key=lambda item: (item[0][1], item[0][3])
            )
            if tid == tenant_id and p == period
        ]


# ── Backend selection ────────────────────────────────────────

_BACKENDS = ("sql", "memory")
_memory_store: InMemoryMeteringStore | None = None


def _selected_backend() -> str:
    backend = get_settings().metering_backend.lower()
    if backend not in _BACKENDS:
        raise ValueError(f"Unknown METERING_BACKEND {backend!r}; expected one of {_BACKENDS}")
    return backend


METERING_BACKEND = _selected_backend()


def get_memory_store() -> InMemoryMeteringStore:
    global _memory_store
    if _memory_store is None:
        _memory_store = InMemoryMeteringStore(catalog_plans())
    return _memory_store


def metering_store_for(session: AsyncSession) -> MeteringStore:
    """Return the store chosen at startup, bound to ``session`` where it needs one."""
    if METERING_BACKEND == "memory":
        return get_memory_store().bind(session)
    return SqlMeteringStore(session)
