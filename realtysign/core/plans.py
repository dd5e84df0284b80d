"""Subscription plan catalog.

Single source of truth for the plans offered at signup and on the billing page.
Rows are inserted once; an existing plan id is never overwritten, so a plan's
limits only change by publishing a new id.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from realtysign.models.plan import SubscriptionPlan

PLAN_CATALOG: list[dict] = [
    {
        "id": "starter",
        "name": "Starter",
        "price": Decimal("29.00"),
        "documents_limit": 50,
        "envelopes_limit": 50,
        "ai_requests_limit": 100,
        "storage_limit": 1,
        "features": ["ai_parsing", "email_support"],
    },
    {
        "id": "professional",
        "name": "Professional",
        "price": Decimal("79.00"),
        "documents_limit": 200,
        "envelopes_limit": 500,
        "ai_requests_limit": 1000,
        "storage_limit": 10,
        "features": ["ai_parsing", "signing_reminders", "priority_support"],
    },
    {
        "id": "brokerage",
        "name": "Brokerage",
        "price": Decimal("199.00"),
        "documents_limit": 1000,
        "envelopes_limit": 2500,
        "ai_requests_limit": 5000,
        "storage_limit": 100,
        "features": ["ai_parsing", "signing_reminders", "team_accounts", "phone_support"],
    },
]


def catalog_plans() -> list[SubscriptionPlan]:
    return [SubscriptionPlan.from_catalog(entry) for entry in PLAN_CATALOG]


async def seed_plans(session: AsyncSession) -> int:
    """Insert catalog plans that are missing. Returns the number inserted."""
    inserted = 0
    for plan in catalog_plans():
        if await session.get(SubscriptionPlan, plan.id) is None:
            session.add(plan)
            inserted += 1
    if inserted:
        await session.commit()
    return inserted
