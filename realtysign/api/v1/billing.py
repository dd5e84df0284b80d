"""Subscription checkout, Stripe webhooks and billing history."""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel
from sqlmodel import select

from realtysign.api.deps import Auth, Session
from realtysign.core.errors import UpstreamServiceFailure
from realtysign.models.billing import BillingRecord, BillingRecordRead
from realtysign.models.tenant import Tenant
from realtysign.models.user import User
from realtysign.services.payments import (
    construct_webhook_event,
    get_or_create_subscription,
    handle_webhook_event,
    payments_enabled,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


class SubscriptionResponse(BaseModel):
    subscription_id: str
    client_secret: str | None


@router.post("/subscription", response_model=SubscriptionResponse)
async def create_subscription(auth: Auth, session: Session) -> SubscriptionResponse:
    if not payments_enabled():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured",
        )
    tenant = await session.get(Tenant, auth.tenant_id)
    user = await session.get(User, auth.user_id)
    if tenant is None or user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    try:
        handle = await get_or_create_subscription(session, tenant, user.email)
    except UpstreamServiceFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to create subscription",
        ) from exc
    return SubscriptionResponse(
        subscription_id=handle.subscription_id,
        client_secret=handle.client_secret,
    )


@router.post("/webhook")
async def stripe_webhook(request: Request, session: Session) -> dict:
    """Stripe event receiver (unauthenticated; verified by signature)."""
    payload = await request.body()
    try:
        event = construct_webhook_event(payload, request.headers.get("stripe-signature"))
    except ValueError as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    await handle_webhook_event(session, event)
    return {"received": True}


@router.get("/history", response_model=list[BillingRecordRead])
async def billing_history(auth: Auth, session: Session) -> list[BillingRecordRead]:
    stmt = (
        select(BillingRecord)
        .where(BillingRecord.tenant_id == auth.tenant_id)
        .order_by(BillingRecord.billing_date.desc())
    )
    result = await session.execute(stmt)
    return [BillingRecordRead.model_validate(r) for r in result.scalars().all()]
