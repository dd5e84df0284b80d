"""Entitlement resolver — tenant → plan → numeric limits."""

import uuid

from realtysign.core.errors import NoPlanAssigned
from realtysign.models.plan import SubscriptionPlan
from realtysign.models.usage import ResourceKind
from realtysign.services.usage_store import MeteringStore


async def get_plan_for(store: MeteringStore, tenant_id: uuid.UUID) -> SubscriptionPlan:
    """Raises NoPlanAssigned when the tenant has no plan or the plan id does not resolve."""
    plan_id = await store.get_tenant_plan_id(tenant_id)
    if not plan_id:
        raise NoPlanAssigned(tenant_id)
    plan = await store.get_plan(plan_id)
    if plan is None:
        raise NoPlanAssigned(tenant_id)
    return plan


def limit_for(plan: SubscriptionPlan, kind: ResourceKind) -> int:
    if kind == ResourceKind.DOCUMENT:
        return plan.documents_limit
    if kind == ResourceKind.ENVELOPE:
        return plan.envelopes_limit
    return plan.ai_requests_limit
