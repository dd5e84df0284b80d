"""SubscriptionPlan model — numeric limits a tenant is entitled to per period."""

import json
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Numeric, Text
from sqlmodel import Column, Field, SQLModel

from realtysign.models.base import utcnow


class SubscriptionPlan(SQLModel, table=True):
    __tablename__ = "subscription_plans"

    # Stable catalog key, e.g. "starter". Tenants reference plans by id only.
    id: str = Field(primary_key=True, max_length=50)
    name: str = Field(max_length=100, nullable=False)
    price: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))

    documents_limit: int = Field(nullable=False)
    envelopes_limit: int = Field(nullable=False)
    ai_requests_limit: int = Field(nullable=False)
    storage_limit: int = Field(nullable=False)  # GB

    # JSON array of feature flags
    features: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))

    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    @classmethod
    def from_catalog(cls, entry: dict) -> "SubscriptionPlan":
        data = dict(entry)
        data["features"] = json.dumps(data.get("features", []))
        return cls(**data)

    def feature_list(self) -> list[str]:
        return json.loads(self.features or "[]")


# ── Pydantic schemas ─────────────────────────────────────────

class PlanRead(SQLModel):
    id: str
    name: str
    price: Decimal
    documents_limit: int
    envelopes_limit: int
    ai_requests_limit: int
    storage_limit: int
    features: list[str]

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanRead":
        return cls(
            id=plan.id,
            name=plan.name,
            price=plan.price,
            documents_limit=plan.documents_limit,
            envelopes_limit=plan.envelopes_limit,
            ai_requests_limit=plan.ai_requests_limit,
            storage_limit=plan.storage_limit,
            features=plan.feature_list(),
        )
