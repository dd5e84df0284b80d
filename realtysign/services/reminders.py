"""Signing reminders — stale pending signatures get a nudge, subject to a cool-down.

A (document, recipient) pair is eligible when its document is still pending,
the pair is still awaiting a signature, it was created at least
``days_threshold`` days ago, and it was never reminded or last reminded more
than ``reminder_cooldown_days`` ago. The reminder timestamp is written only
after a successful send, so a failed attempt is retried on the next sweep.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from realtysign.core.config import get_settings
from realtysign.core.database import async_session_factory
from realtysign.models.base import utcnow
from realtysign.models.document import AWAITING_SIGNATURE, Document, DocumentRecipient, DocumentStatus
from realtysign.models.recipient import Recipient
from realtysign.models.tenant import Tenant
from realtysign.services.contacts import get_tenant_contact
from realtysign.services.email import send_signing_reminder_notification

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    sent: int = 0
    failed: int = 0

    def __iadd__(self, other: "SweepResult") -> "SweepResult":
        self.sent += other.sent
        self.failed += other.failed
        return self


def _awaiting_clause():
    return (
        Document.status == DocumentStatus.PENDING,
        DocumentRecipient.status.in_(AWAITING_SIGNATURE),  # type: ignore[attr-defined]
    )


async def due_reminders(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    now: datetime,
    days_threshold: int,
) -> list[tuple[DocumentRecipient, Document, Recipient]]:
    cooldown = timedelta(days=get_settings().reminder_cooldown_days)
    stmt = (
        select(DocumentRecipient, Document, Recipient)
        .join(Document, Document.id == DocumentRecipient.document_id)
        .join(Recipient, Recipient.id == DocumentRecipient.recipient_id)
        .where(
            DocumentRecipient.tenant_id == tenant_id,
            *_awaiting_clause(),
            DocumentRecipient.created_at <= now - timedelta(days=days_threshold),
            or_(
                DocumentRecipient.last_reminder_at.is_(None),  # type: ignore[union-attr]
                DocumentRecipient.last_reminder_at < now - cooldown,  # type: ignore[operator]
            ),
        )
        .order_by(DocumentRecipient.created_at)
    )
    return list((await session.execute(stmt)).all())


async def sweep_tenant(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    now: datetime | None = None,
    days_threshold: int | None = None,
) -> SweepResult:
    """Send reminders for one tenant. Each recipient is attempted independently."""
    now = now or utcnow()
    if days_threshold is None:
        days_threshold = get_settings().reminder_days_threshold

    result = SweepResult()
    due = await due_reminders(session, tenant_id, now, days_threshold)
    if not due:
        return result

    contact = await get_tenant_contact(session, tenant_id)
    if contact is not None:
        sender_name = contact.name
    else:
        tenant = await session.get(Tenant, tenant_id)
        sender_name = tenant.name if tenant else "Your agent"

    for pending, document, recipient in due:
        ok = await send_signing_reminder_notification(
            recipient.email,
            recipient.name,
            document.name,
            sender_name,
            days_waiting=(now - pending.created_at).days,
        )
        if not ok:
            result.failed += 1
            logger.warning(
                "Reminder for document %s to %s failed; will retry next sweep",
                document.id, recipient.email,
            )
            continue
        pending.last_reminder_at = now
        pending.reminder_count += 1
        session.add(pending)
        await session.commit()
        result.sent += 1

    logger.info("Tenant %s reminders: %d sent, %d failed", tenant_id, result.sent, result.failed)
    return result


async def tenants_with_pending_signatures(session: AsyncSession) -> list[uuid.UUID]:
    stmt = (
        select(DocumentRecipient.tenant_id)
        .join(Document, Document.id == DocumentRecipient.document_id)
        .where(*_awaiting_clause())
        .distinct()
    )
    return list((await session.execute(stmt)).scalars().all())


async def sweep_all_tenants(now: datetime | None = None) -> SweepResult:
    """Scheduled sweep. A failing tenant is logged and skipped."""
    async with async_session_factory() as session:
        tenant_ids = await tenants_with_pending_signatures(session)

    total = SweepResult()
    for tenant_id in tenant_ids:
        try:
            async with async_session_factory() as session:
                total += await sweep_tenant(session, tenant_id, now=now)
        except Exception:
            logger.exception("Reminder sweep failed for tenant %s", tenant_id)

    logger.info(
        "Reminder sweep over %d tenants: %d sent, %d failed",
        len(tenant_ids), total.sent, total.failed,
    )
    return total


class ReminderScheduler:
    """Runs ``sweep`` every ``interval`` seconds until stopped.

    The first sweep runs one interval after ``start()``.
    """

    def __init__(
        self,
        interval: float,
        sweep: Callable[[], Awaitable[object]] = sweep_all_tenants,
    ) -> None:
        self.interval = interval
        self._sweep = sweep
        self._stopped = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._task = asyncio.create_task(self._run(), name="reminder-scheduler")
        logger.info("Reminder scheduler started (every %.0fs)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopped.set()
        await self._task
        self._task = None
        logger.info("Reminder scheduler stopped")

    async def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stopped.is_set():
                break
            try:
                await self._sweep()
            except Exception:
                logger.exception("Reminder sweep crashed")
