"""Usage ledger — per-tenant, per-kind, per-month consumption counters."""

from __future__ import annotations

import logging
import uuid

from realtysign.models.base import billing_period
from realtysign.models.usage import ResourceKind
from realtysign.services.usage_store import MeteringStore

logger = logging.getLogger(__name__)


async def record_usage(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    kind: ResourceKind,
    period: str | None = None,
    amount: int = 1,
) -> int:
    """Add ``amount`` to the tenant's counter for ``kind`` in ``period``.

    Call only after the metered action completed. Returns the new total.
    """
    if amount < 1:
        raise ValueError("Usage amount must be a positive integer")
    period = period or billing_period()
    total = await store.increment_usage(tenant_id, ResourceKind(kind), period, amount)
    logger.debug("Usage %s/%s/%s is now %d", tenant_id, kind, period, total)
    return total


async def get_usage_for_period(
    store: MeteringStore,
    tenant_id: uuid.UUID,
    period: str | None = None,
) -> dict[ResourceKind, int]:
    """Counts for document, envelope and ai_request; kinds never used are 0."""
    return await store.usage_for_period(tenant_id, period or billing_period())
