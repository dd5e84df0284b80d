"""Tests for the signing-reminder sweep and its scheduler."""

import asyncio
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from realtysign.models.base import utcnow
from realtysign.models.document import Document, DocumentRecipient, DocumentStatus, SignatureStatus
from realtysign.models.recipient import Recipient
from realtysign.models.tenant import Tenant
from realtysign.models.user import User, UserRole
from realtysign.services.reminders import (
    ReminderScheduler,
    SweepResult,
    sweep_all_tenants,
    sweep_tenant,
)


async def _pending_signature(
    session: AsyncSession,
    *,
    age_days: float = 4,
    doc_status: DocumentStatus = DocumentStatus.PENDING,
    sig_status: SignatureStatus = SignatureStatus.SENT,
) -> tuple[uuid.UUID, DocumentRecipient]:
    """Create tenant + owner + document + one recipient created ``age_days`` ago."""
    suffix = uuid.uuid4().hex[:8]
    tenant = Tenant(name="Remind Realty", slug=f"remind-{suffix}")
    session.add(tenant)
    await session.flush()
    session.add(User(
        tenant_id=tenant.id,
        email=f"owner-{suffix}@remind.com",
        password_hash="x",
        display_name="Riley Agent",
        role=UserRole.OWNER,
    ))
    recipient = Recipient(tenant_id=tenant.id, name="Bea Buyer", email=f"bea-{suffix}@example.com")
    document = Document(
        tenant_id=tenant.id,
        name="Purchase Agreement",
        filename="purchase.pdf",
        file_content=b"%PDF",
        status=doc_status,
    )
    session.add_all([recipient, document])
    await session.flush()
    pending = DocumentRecipient(
        tenant_id=tenant.id,
        document_id=document.id,
        recipient_id=recipient.id,
        status=sig_status,
        created_at=utcnow() - timedelta(days=age_days),
    )
    session.add(pending)
    await session.commit()
    return tenant.id, pending


@pytest.mark.asyncio
async def test_stale_signature_is_reminded_then_cooled_down(session: AsyncSession):
    tenant_id, pending = await _pending_signature(session, age_days=4)
    now = utcnow()
    mock_send = AsyncMock(return_value=True)

    with patch("realtysign.services.reminders.send_signing_reminder_notification", mock_send):
        first = await sweep_tenant(session, tenant_id, now=now, days_threshold=3)
        again = await sweep_tenant(session, tenant_id, now=now + timedelta(hours=1), days_threshold=3)
        at_two_days = await sweep_tenant(session, tenant_id, now=now + timedelta(days=2), days_threshold=3)
        after_cooldown = await sweep_tenant(
            session, tenant_id, now=now + timedelta(days=2, minutes=1), days_threshold=3
        )

    assert (first.sent, again.sent, at_two_days.sent, after_cooldown.sent) == (1, 0, 0, 1)
    await session.refresh(pending)
    assert pending.reminder_count == 2
    assert pending.last_reminder_at == now + timedelta(days=2, minutes=1)

    args, kwargs = mock_send.await_args_list[0]
    assert args[0].startswith("bea-")
    assert args[2] == "Purchase Agreement"
    assert args[3] == "Riley Agent"
    assert kwargs["days_waiting"] == 4


@pytest.mark.asyncio
async def test_recent_signature_not_selected(session: AsyncSession):
    tenant_id, _ = await _pending_signature(session, age_days=2)
    mock_send = AsyncMock(return_value=True)

    with patch("realtysign.services.reminders.send_signing_reminder_notification", mock_send):
        result = await sweep_tenant(session, tenant_id, days_threshold=3)

    assert result.sent == 0
    mock_send.assert_not_awaited()


@pytest.mark.asyncio
async def test_threshold_is_configurable(session: AsyncSession):
    tenant_id, _ = await _pending_signature(session, age_days=2)
    mock_send = AsyncMock(return_value=True)

    with patch("realtysign.services.reminders.send_signing_reminder_notification", mock_send):
        result = await sweep_tenant(session, tenant_id, days_threshold=1)

    assert result.sent == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("doc_status", "sig_status"),
    [
        (DocumentStatus.PENDING, SignatureStatus.SIGNED),
        (DocumentStatus.PENDING, SignatureStatus.DECLINED),
        (DocumentStatus.COMPLETED, SignatureStatus.SENT),
        (DocumentStatus.FAILED, SignatureStatus.PENDING),
    ],
)
async def test_terminal_states_not_reminded(session: AsyncSession, doc_status, sig_status):
    tenant_id, _ = await _pending_signature(session, doc_status=doc_status, sig_status=sig_status)
    mock_send = AsyncMock(return_value=True)

    with patch("realtysign.services.reminders.send_signing_reminder_notification", mock_send):
        result = await sweep_tenant(session, tenant_id, days_threshold=3)

    assert result.sent == 0
    mock_send.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_send_is_retried_without_cooldown(session: AsyncSession):
    tenant_id, pending = await _pending_signature(session)
    now = utcnow()

    with patch(
        "realtysign.services.reminders.send_signing_reminder_notification",
        AsyncMock(return_value=False),
    ):
        failed = await sweep_tenant(session, tenant_id, now=now, days_threshold=3)

    assert (failed.sent, failed.failed) == (0, 1)
    await session.refresh(pending)
    assert pending.last_reminder_at is None
    assert pending.reminder_count == 0

    with patch(
        "realtysign.services.reminders.send_signing_reminder_notification",
        AsyncMock(return_value=True),
    ):
        retried = await sweep_tenant(session, tenant_id, now=now + timedelta(minutes=5), days_threshold=3)

    assert retried.sent == 1


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_others(session: AsyncSession):
    tenant_id, first = await _pending_signature(session)
    document_id = first.document_id
    second = Recipient(tenant_id=tenant_id, name="Sam Seller", email=f"sam-{uuid.uuid4().hex[:6]}@example.com")
    session.add(second)
    await session.flush()
    session.add(DocumentRecipient(
        tenant_id=tenant_id,
        document_id=document_id,
        recipient_id=second.id,
        signing_order=2,
        status=SignatureStatus.SENT,
        created_at=utcnow() - timedelta(days=5),
    ))
    await session.commit()

    with patch(
        "realtysign.services.reminders.send_signing_reminder_notification",
        AsyncMock(side_effect=[False, True]),
    ):
        result = await sweep_tenant(session, tenant_id, days_threshold=3)

    assert (result.sent, result.failed) == (1, 1)


@pytest.mark.asyncio
async def test_sweep_all_tenants_skips_failing_tenant(session: AsyncSession, test_session_factory):
    first_tenant, _ = await _pending_signature(session)
    second_tenant, _ = await _pending_signature(session)

    async def _sweep(sess, tenant_id, now=None):
        if tenant_id == first_tenant:
            raise RuntimeError("mail relay exploded")
        return SweepResult(sent=1)

    with (
        patch("realtysign.services.reminders.async_session_factory", test_session_factory),
        patch("realtysign.services.reminders.sweep_tenant", side_effect=_sweep) as mock_sweep,
    ):
        total = await sweep_all_tenants()

    swept = {call.args[1] for call in mock_sweep.call_args_list}
    assert {first_tenant, second_tenant} <= swept
    assert total.sent == len(swept) - 1


# ── Scheduler ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_scheduler_runs_every_interval_until_stopped():
    sweep = AsyncMock()
    scheduler = ReminderScheduler(interval=0.01, sweep=sweep)

    scheduler.start()
    assert scheduler.running
    await asyncio.sleep(0.1)
    await scheduler.stop()

    assert not scheduler.running
    assert sweep.await_count >= 2
    count = sweep.await_count
    await asyncio.sleep(0.05)
    assert sweep.await_count == count


@pytest.mark.asyncio
async def test_scheduler_stop_before_first_tick():
    sweep = AsyncMock()
    scheduler = ReminderScheduler(interval=3600, sweep=sweep)

    scheduler.start()
    await asyncio.sleep(0)
    await scheduler.stop()

    sweep.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduler_survives_failing_sweep():
    sweep = AsyncMock(side_effect=RuntimeError("db down"))
    scheduler = ReminderScheduler(interval=0.01, sweep=sweep)

    scheduler.start()
    await asyncio.sleep(0.08)
    assert scheduler.running
    await scheduler.stop()

    assert sweep.await_count >= 2
