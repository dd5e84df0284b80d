"""BillingRecord model — invoices reported by the payment provider."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Numeric
from sqlmodel import Column, Field, SQLModel

from realtysign.models.base import TimestampMixin, new_uuid


class BillingStatus(StrEnum):
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"


class BillingRecord(TimestampMixin, SQLModel, table=True):
    __tablename__ = "billing_records"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    stripe_invoice_id: str | None = Field(default=None, max_length=255, index=True)
    amount: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    description: str = Field(max_length=500, nullable=False)
    status: BillingStatus = Field(nullable=False)
    billing_date: datetime = Field(nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class BillingRecordRead(SQLModel):
    id: uuid.UUID
    stripe_invoice_id: str | None
    amount: Decimal
    description: str
    status: BillingStatus
    billing_date: datetime
