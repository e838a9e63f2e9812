"""Stripe webhook endpoint."""

from __future__ import annotations

import logging

from bragfeed.models import StripeWebhookEvent
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db
from api.services.billing_webhooks import (
    CustomerLookupPolicy,
    WebhookOutcome,
    lookup_policy_from_settings,
    reconcile_event,
)
from api.services.events import record_event
from api.services.stripe_service import verify_webhook_signature

logger = logging.getLogger(__name__)
router = APIRouter()


def get_lookup_policy() -> CustomerLookupPolicy:
    return lookup_policy_from_settings()


async def _register_webhook_event(
    db: AsyncSession,
    stripe_event_id: str,
    event_type: str,
) -> bool:
    """Persist webhook event ID; return False if already processed."""
    existing = await db.execute(
        select(StripeWebhookEvent.id).where(StripeWebhookEvent.stripe_event_id == stripe_event_id)
    )
    if existing.scalars().first() is not None:
        return False

    db.add(StripeWebhookEvent(stripe_event_id=stripe_event_id, event_type=event_type))
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        return False
    return True


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    policy: CustomerLookupPolicy = Depends(get_lookup_policy),
):
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature", "").strip()
    if not sig_header:
        logger.error("Missing Stripe signature")
        return _error(400, "Missing Stripe signature")

    try:
        event = verify_webhook_signature(payload, sig_header)
    except RuntimeError as exc:
        logger.error("Stripe webhook rejected: %s", exc)
        return _error(503, str(exc))
    except Exception as exc:
        logger.error("Webhook signature verification failed: %s", exc)
        return _error(400, "Webhook signature verification failed")

    event_id = str(event.get("id", "")).strip()
    event_type = str(event.get("type", "")).strip()
    event_data = event.get("data")
    if (
        not event_id
        or not event_type
        or not isinstance(event_data, dict)
        or not isinstance(event_data.get("object"), dict)
    ):
        return _error(400, "Invalid webhook payload")
    data = event_data["object"]

    try:
        if not await _register_webhook_event(db, event_id, event_type):
            logger.info("Stripe duplicate webhook ignored: %s", event_id)
            return {"received": True, "duplicate": True}

        outcome = await reconcile_event(db, event_type, data, policy)
        if outcome is not WebhookOutcome.IGNORED:
            record_event(
                db,
                f"stripe.webhook.{outcome.value}",
                None,
                {"event_type": event_type, "stripe_event_id": event_id},
            )
        # Commit before answering so a failed write is reported and redelivered.
        await db.commit()
    except Exception:
        logger.exception("Error handling event %s", event_type)
        await db.rollback()
        return _error(202, f"Failed to handle event {event_type}")

    return {"received": True}
