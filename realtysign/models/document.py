"""Document model — an uploaded agreement routed for signature."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import EmailStr
from sqlalchemy import LargeBinary, Numeric, Text
from sqlmodel import Column, Field, SQLModel

from realtysign.models.base import TimestampMixin, new_uuid, utcnow
from realtysign.models.recipient import RecipientRole


class DocumentStatus(StrEnum):
    PROCESSING = "processing"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SignatureStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    SIGNED = "signed"
    DECLINED = "declined"


# Statuses still awaiting a signer's action
AWAITING_SIGNATURE = (SignatureStatus.PENDING, SignatureStatus.SENT)


class Document(TimestampMixin, SQLModel, table=True):
    __tablename__ = "documents"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    filename: str = Field(max_length=255, nullable=False)
    file_size: int = Field(default=0)
    file_content: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    extracted_text: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))

    # Filled in by the AI parser
    document_type: str | None = Field(default=None, max_length=50)
    property_address: str | None = Field(default=None, max_length=500)
    property_value: Decimal | None = Field(default=None, sa_column=Column(Numeric(12, 2)))
    ai_parsing_data: str | None = Field(default=None, sa_column=Column(Text))

    status: DocumentStatus = Field(default=DocumentStatus.PROCESSING)
    error_message: str | None = Field(default=None, max_length=2000)
    envelope_id: str | None = Field(default=None, max_length=255, index=True)

    email_subject: str = Field(default="", max_length=500)
    email_message: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))


class DocumentRecipient(SQLModel, table=True):
    """A (document, recipient) pair awaiting action — the unit signing reminders act on."""

    __tablename__ = "document_recipients"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    document_id: uuid.UUID = Field(foreign_key="documents.id", nullable=False, index=True)
    recipient_id: uuid.UUID = Field(foreign_key="recipients.id", nullable=False, index=True)

    signing_order: int = Field(default=1)
    status: SignatureStatus = Field(default=SignatureStatus.PENDING)
    signed_at: datetime | None = Field(default=None)

    last_reminder_at: datetime | None = Field(default=None)
    reminder_count: int = Field(default=0)

    created_at: datetime = Field(default_factory=utcnow, nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class SignerInput(SQLModel):
    """One signer as submitted with an upload."""
    name: str = Field(max_length=255)
    email: EmailStr
    role: RecipientRole = RecipientRole.OTHER
    phone: str = Field(default="", max_length=50)


class DocumentRecipientRead(SQLModel):
    id: uuid.UUID
    recipient_id: uuid.UUID
    name: str
    email: str
    role: RecipientRole
    signing_order: int
    status: SignatureStatus
    signed_at: datetime | None
    last_reminder_at: datetime | None
    reminder_count: int


class SignatureStatusUpdate(SQLModel):
    status: SignatureStatus


class DocumentRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    filename: str
    file_size: int
    document_type: str | None
    property_address: str | None
    property_value: Decimal | None
    status: DocumentStatus
    error_message: str | None
    envelope_id: str | None
    email_subject: str
    email_message: str
    created_at: datetime
    updated_at: datetime


class DocumentDetail(DocumentRead):
    ai_parsing_data: dict | None = None
    recipients: list[DocumentRecipientRead] = []
