"""Current-period usage, quota checks and recorded alerts."""

from fastapi import APIRouter
from pydantic import BaseModel

from realtysign.api.deps import Auth, Store
from realtysign.core.errors import NoPlanAssigned
from realtysign.models.base import billing_period
from realtysign.models.usage import CurrentUsageRead, ResourceKind, ResourceUsage, UsageAlertRead
from realtysign.services.entitlements import get_plan_for, limit_for
from realtysign.services.quota import can_perform_action
from realtysign.services.usage_alerts import usage_percentage
from realtysign.services.usage_ledger import get_usage_for_period
from realtysign.services.usage_store import MeteringStore

router = APIRouter(prefix="/usage", tags=["usage"])


class ActionCheckResponse(BaseModel):
    action: str
    allowed: bool
    message: str | None = None


async def current_usage(store: MeteringStore, tenant_id) -> CurrentUsageRead:
    """Usage per resource kind against the tenant's plan limits.

    A tenant without a plan reports limits of 0.
    """
    period = billing_period()
    usage = await get_usage_for_period(store, tenant_id, period)
    try:
        plan = await get_plan_for(store, tenant_id)
    except NoPlanAssigned:
        plan = None

    resources = {}
    for kind in ResourceKind:
        limit = limit_for(plan, kind) if plan else 0
        resources[str(kind)] = ResourceUsage(
            current=usage[kind],
            limit=limit,
            percentage=usage_percentage(usage[kind], limit) if limit > 0 else 0,
        )
    return CurrentUsageRead(period=period, plan_id=plan.id if plan else None, **resources)


@router.get("/current", response_model=CurrentUsageRead)
async def get_current_usage(auth: Auth, store: Store) -> CurrentUsageRead:
    return await current_usage(store, auth.tenant_id)


@router.get("/check/{action}", response_model=ActionCheckResponse)
async def check_action(action: str, auth: Auth, store: Store) -> ActionCheckResponse:
    decision = await can_perform_action(store, auth.tenant_id, action)
    return ActionCheckResponse(action=action, allowed=decision.allowed, message=decision.message)


@router.get("/alerts", response_model=list[UsageAlertRead])
async def list_alerts(auth: Auth, store: Store) -> list[UsageAlertRead]:
    alerts = await store.alerts_for_period(auth.tenant_id, billing_period())
    return [UsageAlertRead.model_validate(alert) for alert in alerts]
