"""Document processing job — AI parse, envelope, signer notifications.

Each metered step follows check → perform → record. Usage recorded for a
step is kept even when a later step fails.
"""

from __future__ import annotations

import json
import logging
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from realtysign.core.database import async_session_factory
from realtysign.core.errors import QuotaExceeded, UpstreamServiceFailure
from realtysign.models.base import utcnow
from realtysign.models.document import Document, DocumentRecipient, DocumentStatus, SignatureStatus
from realtysign.models.recipient import Recipient
from realtysign.models.tenant import Tenant
from realtysign.models.usage import ResourceKind
from realtysign.services.contacts import get_tenant_contact
from realtysign.services.document_parser import parse_document
from realtysign.services.email import send_document_failed_notification, send_document_notification
from realtysign.services.esign import EnvelopeRequest, EnvelopeSigner, create_envelope
from realtysign.services.quota import ensure_allowed
from realtysign.services.usage_alerts import record_and_alert
from realtysign.services.usage_store import metering_store_for

logger = logging.getLogger(__name__)


async def process_document(ctx: dict, document_id: str, tenant_id: str) -> dict:
    """ARQ task: parse an uploaded document and route it for signature.

    Returns:
        dict with the final status and envelope id, or an ``error`` key.
    """
    async with async_session_factory() as session:
        document = await _get_document(session, document_id, tenant_id)
        if document is None:
            logger.error("Document %s not found for tenant %s", document_id, tenant_id)
            return {"error": "document_not_found"}

        tid = uuid.UUID(tenant_id)
        store = metering_store_for(session)

        try:
            # 1. AI parse
            await ensure_allowed(store, tid, ResourceKind.AI_REQUEST)
            parsed = await parse_document(document.extracted_text, document.filename)
            await record_and_alert(store, session, tid, ResourceKind.AI_REQUEST)

            document.ai_parsing_data = json.dumps(parsed.to_dict())
            document.document_type = parsed.document_type
            document.property_address = parsed.property_address or None
            document.property_value = (
                Decimal(str(parsed.property_value)) if parsed.property_value is not None else None
            )
            document.status = DocumentStatus.PENDING
            document.error_message = None
            document.updated_at = utcnow()
            session.add(document)
            await session.commit()

            # 2. Envelope
            signers = await _signers(session, document.id)
            if not signers:
                logger.info("Document %s parsed; no recipients to route", document_id)
                return {"status": str(document.status), "envelope_id": None}

            await ensure_allowed(store, tid, ResourceKind.ENVELOPE)
            tenant = await session.get(Tenant, tid)
            envelope = await create_envelope(
                EnvelopeRequest(
                    document_name=document.name,
                    document_content=document.file_content,
                    email_subject=document.email_subject or f"Please sign: {document.name}",
                    email_message=document.email_message,
                    signers=[
                        EnvelopeSigner(r.name, r.email, str(r.role), dr.signing_order)
                        for dr, r in signers
                    ],
                ),
                tenant,
            )

            document.envelope_id = envelope.envelope_id
            document.updated_at = utcnow()
            session.add(document)
            for pending, _ in signers:
                pending.status = SignatureStatus.SENT
                session.add(pending)
            await session.commit()

            await record_and_alert(store, session, tid, ResourceKind.ENVELOPE)

            # 3. Signer notifications (best-effort)
            contact = await get_tenant_contact(session, tid)
            sender_name = contact.name if contact else "Your agent"
            for _, recipient in signers:
                await send_document_notification(
                    recipient.email,
                    recipient.name,
                    document.name,
                    sender_name,
                    document.email_message or None,
                )

            logger.info("Document %s routed in envelope %s", document_id, envelope.envelope_id)
            return {"status": str(document.status), "envelope_id": envelope.envelope_id}

        except (QuotaExceeded, UpstreamServiceFailure) as exc:
            logger.warning("Processing stopped for document %s: %s", document_id, exc)
            await session.rollback()
            await _fail(session, document_id, tenant_id, _reason(exc))
            return {"error": _reason(exc)}

        except Exception as exc:
            logger.exception("Processing failed for document %s", document_id)
            await session.rollback()
            try:
                await _fail(session, document_id, tenant_id, str(exc)[:2000])
            except Exception:
                logger.exception("Failed to mark document %s as failed", document_id)
            return {"error": str(exc)}


def _reason(exc: Exception) -> str:
    if isinstance(exc, QuotaExceeded):
        return exc.message
    return str(exc)[:2000]


async def _get_document(session: AsyncSession, document_id: str, tenant_id: str) -> Document | None:
    stmt = select(Document).where(
        Document.id == uuid.UUID(document_id),
        Document.tenant_id == uuid.UUID(tenant_id),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _signers(
    session: AsyncSession, document_id: uuid.UUID
) -> list[tuple[DocumentRecipient, Recipient]]:
    stmt = (
        select(DocumentRecipient, Recipient)
        .join(Recipient, Recipient.id == DocumentRecipient.recipient_id)
        .where(DocumentRecipient.document_id == document_id)
        .order_by(DocumentRecipient.signing_order)
    )
    return [(dr, r) for dr, r in (await session.execute(stmt)).all()]


async def _fail(session: AsyncSession, document_id: str, tenant_id: str, reason: str) -> None:
    """Mark the document failed and tell the tenant owner."""
    document = await _get_document(session, document_id, tenant_id)
    if document is None:
        return
    document.status = DocumentStatus.FAILED
    document.error_message = reason
    document.updated_at = utcnow()
    session.add(document)
    await session.commit()

    contact = await get_tenant_contact(session, uuid.UUID(tenant_id))
    if contact is None:
        logger.warning("No contact to notify about failed document %s", document_id)
        return
    await send_document_failed_notification(contact.email, contact.name, document.name, reason)
