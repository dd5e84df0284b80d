"""Public plan catalog."""

from fastapi import APIRouter
from sqlmodel import select

from realtysign.api.deps import Session
from realtysign.core import cache
from realtysign.models.plan import PlanRead, SubscriptionPlan

router = APIRouter(prefix="/plans", tags=["plans"])

CACHE_KEY = ("plans", "catalog")


@router.get("", response_model=list[PlanRead])
async def list_plans(session: Session) -> list[PlanRead]:
    cached = cache.get(CACHE_KEY)
    if cached is not None:
        return cached

    result = await session.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.price))
    plans = [PlanRead.from_plan(plan) for plan in result.scalars().all()]
    cache.put(CACHE_KEY, plans)
    return plans
