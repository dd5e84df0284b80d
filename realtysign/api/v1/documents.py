"""Documents — upload, inspection, signing outcomes and reminder sweeps.

All queries are scoped to the caller's tenant.
"""

import json
import logging
import uuid
from pathlib import Path

from arq.connections import ArqRedis, create_pool
from fastapi import APIRouter, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy import delete, func
from sqlmodel import select

from realtysign.api.deps import Auth, Session, Store
from realtysign.core.config import get_settings
from realtysign.models.base import utcnow
from realtysign.models.document import (
    AWAITING_SIGNATURE,
    Document,
    DocumentDetail,
    DocumentRead,
    DocumentRecipient,
    DocumentRecipientRead,
    DocumentStatus,
    SignatureStatus,
    SignatureStatusUpdate,
    SignerInput,
)
from realtysign.models.recipient import Recipient
from realtysign.models.usage import ResourceKind
from realtysign.services.contacts import get_tenant_contact
from realtysign.services.email import send_document_completed_notification
from realtysign.services.extract import ALLOWED_EXTENSIONS, extract_text
from realtysign.services.quota import ensure_allowed
from realtysign.services.reminders import sweep_tenant
from realtysign.services.usage_alerts import record_and_alert
from realtysign.workers.main import redis_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

_signers_adapter = TypeAdapter(list[SignerInput])


class ReminderSweepResponse(BaseModel):
    sent: int
    failed: int


# ── Helpers ───────────────────────────────────────────────────


async def _enqueue_processing(document_id: uuid.UUID, tenant_id: uuid.UUID) -> None:
    """Enqueue the ARQ processing job for an uploaded document."""
    redis: ArqRedis = await create_pool(redis_settings())
    try:
        await redis.enqueue_job(
            "process_document",
            document_id=str(document_id),
            tenant_id=str(tenant_id),
        )
    finally:
        await redis.aclose()


def _parse_signers(raw: str | None) -> list[SignerInput]:
    if not raw:
        return []
    try:
        return _signers_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Invalid recipients: {exc}",
        ) from exc


async def _recipient_for(signer: SignerInput, tenant_id: uuid.UUID, session) -> Recipient:
    """Reuse the tenant's recipient with this email, or create one."""
    stmt = select(Recipient).where(
        Recipient.tenant_id == tenant_id,
        Recipient.email == signer.email,
    )
    recipient = (await session.execute(stmt)).scalars().first()
    if recipient is None:
        recipient = Recipient(
            tenant_id=tenant_id,
            name=signer.name,
            email=signer.email,
            phone=signer.phone,
            role=signer.role,
        )
        session.add(recipient)
        await session.flush()
    return recipient


async def _get_document(document_id: uuid.UUID, tenant_id: uuid.UUID, session) -> Document:
    stmt = select(Document).where(
        Document.id == document_id,
        Document.tenant_id == tenant_id,
    )
    document = (await session.execute(stmt)).scalar_one_or_none()
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


async def _detail(document: Document, session) -> DocumentDetail:
    stmt = (
        select(DocumentRecipient, Recipient)
        .join(Recipient, Recipient.id == DocumentRecipient.recipient_id)
        .where(DocumentRecipient.document_id == document.id)
        .order_by(DocumentRecipient.signing_order)
    )
    recipients = [
        DocumentRecipientRead(
            id=dr.id,
            recipient_id=r.id,
            name=r.name,
            email=r.email,
            role=r.role,
            signing_order=dr.signing_order,
            status=dr.status,
            signed_at=dr.signed_at,
            last_reminder_at=dr.last_reminder_at,
            reminder_count=dr.reminder_count,
        )
        for dr, r in (await session.execute(stmt)).all()
    ]
    base = DocumentRead.model_validate(document).model_dump()
    return DocumentDetail(
        **base,
        ai_parsing_data=json.loads(document.ai_parsing_data) if document.ai_parsing_data else None,
        recipients=recipients,
    )


# ── Endpoints ─────────────────────────────────────────────────


@router.post("/upload", response_model=DocumentRead, status_code=status.HTTP_202_ACCEPTED)
async def upload_document(
    file: UploadFile,
    auth: Auth,
    session: Session,
    store: Store,
    email_subject: str | None = Form(None),
    email_message: str = Form(""),
    recipients: str | None = Form(None),
) -> DocumentRead:
    """Upload an agreement and queue it for parsing and routing."""
    filename = file.filename or "document.pdf"
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Unsupported file type: {ext}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    content = await file.read()
    max_size = get_settings().max_upload_size
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)} MB.",
        )

    signers = _parse_signers(recipients)

    # Raises QuotaExceeded (402)
    await ensure_allowed(store, auth.tenant_id, ResourceKind.DOCUMENT)

    try:
        extracted = extract_text(filename, content)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)
        ) from exc

    document = Document(
        tenant_id=auth.tenant_id,
        name=Path(filename).stem or filename,
        filename=filename,
        file_size=len(content),
        file_content=content,
        extracted_text=extracted,
        email_subject=email_subject or f"Please sign: {filename}",
        email_message=email_message,
        status=DocumentStatus.PROCESSING,
    )
    session.add(document)
    await session.flush()

    for order, signer in enumerate(signers, start=1):
        recipient = await _recipient_for(signer, auth.tenant_id, session)
        session.add(
            DocumentRecipient(
                tenant_id=auth.tenant_id,
                document_id=document.id,
                recipient_id=recipient.id,
                signing_order=order,
            )
        )
    await session.commit()
    await session.refresh(document)

    await record_and_alert(store, session, auth.tenant_id, ResourceKind.DOCUMENT)

    try:
        await _enqueue_processing(document.id, auth.tenant_id)
    except Exception:
        logger.exception("Could not enqueue processing for document %s", document.id)

    return DocumentRead.model_validate(document)


@router.get("", response_model=list[DocumentRead])
async def list_documents(
    auth: Auth,
    session: Session,
    status_filter: DocumentStatus | None = Query(None, alias="status"),
) -> list[DocumentRead]:
    stmt = select(Document).where(Document.tenant_id == auth.tenant_id)
    if status_filter is not None:
        stmt = stmt.where(Document.status == status_filter)
    stmt = stmt.order_by(Document.created_at.desc())
    result = await session.execute(stmt)
    return [DocumentRead.model_validate(d) for d in result.scalars().all()]


@router.post("/reminders", response_model=ReminderSweepResponse)
async def send_reminders(
    auth: Auth,
    session: Session,
    days_threshold: int | None = Query(None, ge=0),
) -> ReminderSweepResponse:
    """On-demand reminder sweep for the caller's tenant.

    Without ``days_threshold`` the configured REMINDER_DAYS_THRESHOLD applies,
    as in the scheduled sweep.
    """
    result = await sweep_tenant(session, auth.tenant_id, days_threshold=days_threshold)
    return ReminderSweepResponse(sent=result.sent, failed=result.failed)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(document_id: uuid.UUID, auth: Auth, session: Session) -> DocumentDetail:
    document = await _get_document(document_id, auth.tenant_id, session)
    return await _detail(document, session)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: uuid.UUID, auth: Auth, session: Session) -> None:
    document = await _get_document(document_id, auth.tenant_id, session)
    await session.execute(
        delete(DocumentRecipient).where(DocumentRecipient.document_id == document.id)
    )
    await session.delete(document)
    await session.commit()


@router.patch(
    "/{document_id}/recipients/{document_recipient_id}",
    response_model=DocumentDetail,
)
async def update_signature_status(
    document_id: uuid.UUID,
    document_recipient_id: uuid.UUID,
    body: SignatureStatusUpdate,
    auth: Auth,
    session: Session,
) -> DocumentDetail:
    """Record a signing outcome reported by the e-signature provider."""
    if body.status not in (SignatureStatus.SIGNED, SignatureStatus.DECLINED):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Status must be 'signed' or 'declined'",
        )

    document = await _get_document(document_id, auth.tenant_id, session)
    pending = await session.get(DocumentRecipient, document_recipient_id)
    if pending is None or pending.document_id != document.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not on document")
    if pending.status not in AWAITING_SIGNATURE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Signature already {pending.status}",
        )

    pending.status = body.status
    if body.status == SignatureStatus.SIGNED:
        pending.signed_at = utcnow()
        recipient = await session.get(Recipient, pending.recipient_id)
        if recipient is not None:
            recipient.documents_signed_count += 1
            session.add(recipient)
    session.add(pending)
    await session.flush()

    unsigned = await session.execute(
        select(func.count())
        .select_from(DocumentRecipient)
        .where(
            DocumentRecipient.document_id == document.id,
            DocumentRecipient.status != SignatureStatus.SIGNED,
        )
    )
    completed = unsigned.scalar_one() == 0
    if completed:
        document.status = DocumentStatus.COMPLETED
    document.updated_at = utcnow()
    session.add(document)
    await session.commit()
    await session.refresh(document)

    if completed:
        contact = await get_tenant_contact(session, auth.tenant_id)
        if contact is not None:
            await send_document_completed_notification(
                contact.email, contact.name, document.name, document.property_address or ""
            )

    return await _detail(document, session)
