"""User subscription endpoints."""

from __future__ import annotations

import logging
from datetime import UTC

from bragfeed.config import get_settings
from bragfeed.models import SubscriptionPayment, User
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_db
from api.services.stripe_service import create_checkout_session, map_checkout_exception

logger = logging.getLogger(__name__)
router = APIRouter()


class CheckoutRequest(BaseModel):
    price_id: str = Field(min_length=1, max_length=255)


@router.get("/")
async def get_subscription_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current subscription flag and the most recent recorded payment."""
    result = await db.execute(
        select(SubscriptionPayment)
        .where(SubscriptionPayment.user_id == user.id)
        .order_by(SubscriptionPayment.subscription_end.desc())
        .limit(1)
    )
    payment = result.scalars().first()
    latest_payment = None
    if payment is not None:
        subscription_end = payment.subscription_end
        if subscription_end.tzinfo is None:
            subscription_end = subscription_end.replace(tzinfo=UTC)
        latest_payment = {
            "invoice_id": payment.invoice_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "subscription_end": subscription_end.isoformat(),
        }
    return {
        "has_active_subscription": bool(user.has_active_subscription),
        "latest_payment": latest_payment,
    }


@router.post("/checkout")
async def create_checkout(
    req: CheckoutRequest,
    user: User = Depends(get_current_user),
):
    """Create a Stripe Checkout session for the caller's subscription."""
    settings = get_settings()
    if not settings.stripe_secret_key:
        raise HTTPException(status_code=503, detail="Stripe is not configured")

    site_url = settings.site_url.rstrip("/")
    try:
        url = create_checkout_session(
            user,
            req.price_id,
            success_url=f"{site_url}/subscription?checkout=success",
            cancel_url=f"{site_url}/subscription?checkout=cancelled",
        )
    except Exception as exc:
        status_code, detail = map_checkout_exception(exc)
        raise HTTPException(status_code=status_code, detail=detail)
    return {"url": url}
