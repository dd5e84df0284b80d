"""Tenant model — the billed account and top-level isolation boundary."""

import uuid

from sqlmodel import Field, SQLModel

from realtysign.models.base import TimestampMixin, new_uuid


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    brokerage: str = Field(default="", max_length=255)
    is_active: bool = Field(default=True)

    # Exactly one plan reference; limits live on the plan, never here.
    plan_id: str | None = Field(default=None, foreign_key="subscription_plans.id", nullable=True)

    # Stripe billing state
    stripe_customer_id: str | None = Field(default=None, max_length=255)
    stripe_subscription_id: str | None = Field(default=None, max_length=255)
    subscription_status: str = Field(default="active", max_length=50)

    # Tenant's own e-signature account — Fernet-encrypted JSON blob
    # {"access_token": ..., "account_id": ...}. NULL means platform credentials.
    encrypted_esign_credentials: str | None = Field(default=None)


# ── Pydantic schemas (read / update) ─────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    brokerage: str
    is_active: bool
    plan_id: str | None
    subscription_status: str


class TenantPlanUpdate(SQLModel):
    plan_id: str = Field(max_length=50)
