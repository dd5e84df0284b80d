"""Quota gate — allow/deny a metered action before it runs.

The gate never writes. Callers follow check → perform → record: usage is
recorded only once the action completed, which leaves a window where two
concurrent requests at ``limit - 1`` can both pass. Overshoot is bounded by
the number of requests in flight.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from realtysign.core.errors import NoPlanAssigned, QuotaExceeded
from realtysign.models.usage import ActionKind, ResourceKind
from realtysign.services.entitlements import get_plan_for, limit_for
from realtysign.services.usage_ledger import get_usage_for_period
from realtysign.services.usage_store import MeteringStore

NO_PLAN_MESSAGE = "No subscription plan found"

ACTION_RESOURCES: dict[ActionKind, ResourceKind] = {
    ActionKind.UPLOAD_DOCUMENT: ResourceKind.DOCUMENT,
    ActionKind.CREATE_ENVELOPE: ResourceKind.ENVELOPE,
    ActionKind.AI_REQUEST: ResourceKind.AI_REQUEST,
}


@dataclass
class LimitCheck:
    allowed: bool
    current: int
    limit: int
    message: str | None = None


@dataclass
class ActionDecision:
    allowed: bool
    message: str | None = None


async def check_limit(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    kind: ResourceKind,
    period: str | None = None,
) -> LimitCheck:
    """Allowed iff current-period usage is strictly below the plan limit."""
    kind = ResourceKind(kind)
    try:
        plan = await get_plan_for(store, tenant_id)
    except NoPlanAssigned:
        return LimitCheck(allowed=False, current=0, limit=0, message=NO_PLAN_MESSAGE)

    usage = await get_usage_for_period(store, tenant_id, period)
    current = usage[kind]
    limit = limit_for(plan, kind)

    if current < limit:
        return LimitCheck(allowed=True, current=current, limit=limit)
    return LimitCheck(
        allowed=False,
        current=current,
        limit=limit,
        message=(
            f"You have reached your {kind} limit of {limit} for this month. "
            "Upgrade your plan to continue."
        ),
    )


async def can_perform_action(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    action: ActionKind | str,
) -> ActionDecision:
    try:
        kind = ACTION_RESOURCES[ActionKind(action)]
    except ValueError:
        return ActionDecision(allowed=False, message="Invalid action type")
    result = await check_limit(store, tenant_id, kind)
    return ActionDecision(allowed=result.allowed, message=result.message)


async def ensure_allowed(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    kind: ResourceKind,
) -> LimitCheck:
    """Raising form of check_limit for request handlers and jobs."""
    result = await check_limit(store, tenant_id, kind)
    if not result.allowed:
        raise QuotaExceeded(
            resource_kind=str(kind),
            current=result.current,
            limit=result.limit,
            message=result.message or NO_PLAN_MESSAGE,
        )
    return result
