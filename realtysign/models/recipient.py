"""Recipient model — a tenant's signing contact (buyer, seller, agent, ...)."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from realtysign.models.base import TimestampMixin, new_uuid


class RecipientRole(StrEnum):
    BUYER = "buyer"
    SELLER = "seller"
    AGENT = "agent"
    WITNESS = "witness"
    OTHER = "other"


class Recipient(TimestampMixin, SQLModel, table=True):
    __tablename__ = "recipients"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    email: str = Field(max_length=320, nullable=False, index=True)
    phone: str = Field(default="", max_length=50)
    role: RecipientRole = Field(default=RecipientRole.OTHER)
    documents_signed_count: int = Field(default=0)


# ── Pydantic schemas ─────────────────────────────────────────

class RecipientCreate(SQLModel):
    name: str = Field(max_length=255)
    email: EmailStr
    phone: str = Field(default="", max_length=50)
    role: RecipientRole = RecipientRole.OTHER


class RecipientUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    role: RecipientRole | None = None


class RecipientRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    email: str
    phone: str
    role: RecipientRole
    documents_signed_count: int
    created_at: datetime
