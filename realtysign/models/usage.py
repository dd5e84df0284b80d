"""Usage metering models — per-period counters and threshold alert facts."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from realtysign.models.base import TimestampMixin, new_uuid, utcnow


class ResourceKind(StrEnum):
    DOCUMENT = "document"
    ENVELOPE = "envelope"
    AI_REQUEST = "ai_request"


class ActionKind(StrEnum):
    UPLOAD_DOCUMENT = "upload_document"
    CREATE_ENVELOPE = "create_envelope"
    AI_REQUEST = "ai_request"


class UsageRecord(TimestampMixin, SQLModel, table=True):
    """One live counter per (tenant, resource kind, period). Never decremented."""

    __tablename__ = "usage_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "resource_kind", "period", name="uq_usage_records_key"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    resource_kind: str = Field(max_length=20, nullable=False)
    period: str = Field(max_length=7, nullable=False)  # YYYY-MM
    count: int = Field(default=0, nullable=False)


class UsageAlert(SQLModel, table=True):
    """Fact: threshold T for resource R was already signalled for a tenant in a period."""

    __tablename__ = "usage_alerts"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "resource_kind", "period", "threshold", name="uq_usage_alerts_scope",
        ),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    resource_kind: str = Field(max_length=20, nullable=False)
    period: str = Field(max_length=7, nullable=False)
    threshold: int = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class ResourceUsage(SQLModel):
    current: int
    limit: int
    percentage: int


class CurrentUsageRead(SQLModel):
    period: str
    plan_id: str | None
    document: ResourceUsage
    envelope: ResourceUsage
    ai_request: ResourceUsage


class UsageAlertRead(SQLModel):
    resource_kind: str
    threshold: int
    period: str
    created_at: datetime
