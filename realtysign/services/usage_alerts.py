"""Threshold alert tracker — one alert per threshold per resource kind per period.

Thresholds are evaluated after every successful usage increment. When a
single evaluation finds several thresholds crossed (e.g. a jump from 70% to
95%), only the highest one is emitted and the lower ones are recorded as
already signalled so they never fire later in the period. Alert facts are
claimed with an insert-if-absent, so concurrent evaluations of the same
crossing emit it once.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from realtysign.core.errors import NoPlanAssigned
from realtysign.models.base import billing_period
from realtysign.models.usage import ResourceKind
from realtysign.services.contacts import TenantContact, get_tenant_contact
from realtysign.services.email import send_usage_alert_notification
from realtysign.services.entitlements import get_plan_for, limit_for
from realtysign.services.usage_ledger import get_usage_for_period, record_usage
from realtysign.services.usage_store import MeteringStore

logger = logging.getLogger(__name__)

THRESHOLDS: tuple[int, ...] = (80, 90, 100)


@dataclass
class ThresholdAlert:
    resource_kind: ResourceKind
    threshold: int
    current: int
    limit: int


def usage_percentage(current: int, limit: int) -> int:
    """Percentage of ``limit`` used, rounded half up."""
    return (current * 200 + limit) // (2 * limit)


async def get_threshold_alerts(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    period: str | None = None,
) -> list[ThresholdAlert]:
    period = period or billing_period()
    try:
        plan = await get_plan_for(store, tenant_id)
    except NoPlanAssigned:
        return []

    usage = await get_usage_for_period(store, tenant_id, period)
    alerts: list[ThresholdAlert] = []

    for kind in ResourceKind:
        limit = limit_for(plan, kind)
        if limit <= 0:
            continue
        percentage = usage_percentage(usage[kind], limit)
        crossed = [t for t in THRESHOLDS if percentage >= t]
        if not crossed:
            continue

        highest = crossed[-1]
        if await store.claim_alert(tenant_id, kind, period, highest):
            alerts.append(
                ThresholdAlert(resource_kind=kind, threshold=highest, current=usage[kind], limit=limit)
            )
        for lower in crossed[:-1]:
            await store.claim_alert(tenant_id, kind, period, lower)

    return alerts


async def notify_threshold_alerts(alerts: list[ThresholdAlert], contact: TenantContact) -> int:
    """Email each alert to the tenant contact. Returns the number delivered."""
    delivered = 0
    for alert in alerts:
        ok = await send_usage_alert_notification(
            contact.email,
            contact.name,
            usage_type=alert.resource_kind,
            current_usage=alert.current,
            limit=alert.limit,
            percentage_used=alert.threshold,
        )
        if ok:
            delivered += 1
        else:
            logger.warning(
                "Usage alert %s@%d%% not delivered to %s",
                alert.resource_kind, alert.threshold, contact.email,
            )
    return delivered


async def record_and_alert(
    store: MeteringStore,
    session: AsyncSession,
    tenant_id: uuid.UUID,
    kind: ResourceKind,
    amount: int = 1,
) -> int:
    """Record completed usage, then evaluate and send threshold alerts.

    Returns the new counter total. Alert delivery problems are logged only.
    """
    total = await record_usage(store, tenant_id, kind, amount=amount)
    alerts = await get_threshold_alerts(store, tenant_id)
    if alerts:
        contact = await get_tenant_contact(session, tenant_id)
        if contact is None:
            logger.warning("Tenant %s has no contact for %d usage alerts", tenant_id, len(alerts))
        else:
            await notify_threshold_alerts(alerts, contact)
    return total
