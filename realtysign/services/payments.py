"""Stripe payments — tenant subscriptions and invoice webhooks.

The Stripe SDK is synchronous; calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import stripe
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from realtysign.core.config import get_settings
from realtysign.core.errors import UpstreamServiceFailure
from realtysign.models.base import utcnow
from realtysign.models.billing import BillingRecord, BillingStatus
from realtysign.models.tenant import Tenant

logger = logging.getLogger(__name__)

INVOICE_EVENTS = {
    "invoice.payment_succeeded": BillingStatus.PAID,
    "invoice.payment_failed": BillingStatus.FAILED,
}
SUBSCRIPTION_EVENTS = ("customer.subscription.updated", "customer.subscription.deleted")


@dataclass
class SubscriptionHandle:
    subscription_id: str
    client_secret: str | None


def payments_enabled() -> bool:
    return bool(get_settings().stripe_secret_key)


def _configure() -> None:
    stripe.api_key = get_settings().stripe_secret_key


def _client_secret(subscription: Mapping) -> str | None:
    invoice = subscription.get("latest_invoice")
    if not isinstance(invoice, Mapping):
        return None
    intent = invoice.get("payment_intent")
    if isinstance(intent, Mapping):
        return intent.get("client_secret")
    confirmation = invoice.get("confirmation_secret")
    if isinstance(confirmation, Mapping):
        return confirmation.get("client_secret")
    return None


async def get_or_create_subscription(
    session: AsyncSession, tenant: Tenant, email: str
) -> SubscriptionHandle:
    """Return the tenant's subscription, creating customer and subscription on first use."""
    _configure()
    try:
        if tenant.stripe_subscription_id:
            subscription = await asyncio.to_thread(
                stripe.Subscription.retrieve,
                tenant.stripe_subscription_id,
                expand=["latest_invoice.payment_intent"],
            )
            return SubscriptionHandle(subscription["id"], _client_secret(subscription))

        if not tenant.stripe_customer_id:
            customer = await asyncio.to_thread(
                stripe.Customer.create,
                email=email,
                name=tenant.name,
                metadata={"tenant_id": str(tenant.id)},
            )
            tenant.stripe_customer_id = customer["id"]

        subscription = await asyncio.to_thread(
            stripe.Subscription.create,
            customer=tenant.stripe_customer_id,
            items=[{"price": get_settings().stripe_price_id}],
            payment_behavior="default_incomplete",
            expand=["latest_invoice.payment_intent"],
        )
    except stripe.StripeError as exc:
        logger.error("Stripe subscription call failed for tenant %s: %s", tenant.id, exc)
        raise UpstreamServiceFailure("payments", str(exc)) from exc

    tenant.stripe_subscription_id = subscription["id"]
    tenant.subscription_status = subscription.get("status") or tenant.subscription_status
    tenant.updated_at = utcnow()
    session.add(tenant)
    await session.commit()
    logger.info("Created Stripe subscription %s for tenant %s", subscription["id"], tenant.id)
    return SubscriptionHandle(subscription["id"], _client_secret(subscription))


def construct_webhook_event(payload: bytes, signature: str | None) -> dict:
    """Verify (when a secret is configured) and parse a webhook body.

    Raises ValueError for a bad signature or an unparsable payload.
    """
    secret = get_settings().stripe_webhook_secret
    try:
        if secret:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature or "", secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        else:
            logger.warning("STRIPE_WEBHOOK_SECRET not set - skipping signature verification")
        event = json.loads(payload)
    except stripe.SignatureVerificationError as exc:
        raise ValueError("Invalid signature") from exc
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Invalid payload") from exc
    if not isinstance(event, dict):
        raise ValueError("Invalid payload")
    return event


async def _tenant_for_customer(session: AsyncSession, customer_id: str | None) -> Tenant | None:
    if not customer_id:
        return None
    result = await session.execute(select(Tenant).where(Tenant.stripe_customer_id == customer_id))
    return result.scalars().first()


async def _record_invoice(session: AsyncSession, invoice: Mapping, status: BillingStatus) -> bool:
    tenant = await _tenant_for_customer(session, invoice.get("customer"))
    if tenant is None:
        logger.warning("Invoice %s for unknown customer %s", invoice.get("id"), invoice.get("customer"))
        return False

    existing = await session.execute(
        select(BillingRecord).where(
            BillingRecord.stripe_invoice_id == invoice.get("id"),
            BillingRecord.status == status,
        )
    )
    if existing.scalars().first() is not None:
        return False

    cents = invoice.get("amount_paid") if status == BillingStatus.PAID else invoice.get("amount_due")
    created = invoice.get("created")
    billing_date = (
        datetime.fromtimestamp(created, tz=timezone.utc).replace(tzinfo=None) if created else utcnow()
    )
    session.add(
        BillingRecord(
            tenant_id=tenant.id,
            stripe_invoice_id=invoice.get("id"),
            amount=Decimal(cents or 0) / 100,
            description=invoice.get("description") or "Subscription payment",
            status=status,
            billing_date=billing_date,
        )
    )
    await session.commit()
    return True


async def _apply_subscription_status(session: AsyncSession, subscription: Mapping, deleted: bool) -> bool:
    tenant = await _tenant_for_customer(session, subscription.get("customer"))
    if tenant is None:
        return False
    tenant.subscription_status = "canceled" if deleted else (subscription.get("status") or "active")
    if deleted:
        tenant.stripe_subscription_id = None
    tenant.updated_at = utcnow()
    session.add(tenant)
    await session.commit()
    return True


async def handle_webhook_event(session: AsyncSession, event: Mapping) -> bool:
    """Apply an accepted event. Returns True when it changed stored state."""
    event_type = event.get("type")
    data = (event.get("data") or {}).get("object") or {}

    if event_type in INVOICE_EVENTS:
        return await _record_invoice(session, data, INVOICE_EVENTS[event_type])
    if event_type in SUBSCRIPTION_EVENTS:
        return await _apply_subscription_status(
            session, data, deleted=event_type == "customer.subscription.deleted"
        )
    logger.info("Ignoring unhandled Stripe event type: %s", event_type)
    return False
