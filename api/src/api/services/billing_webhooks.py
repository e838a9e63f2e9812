"""Reconcile Stripe billing events into users and subscription payments.

Two events matter:

* ``checkout.session.completed`` links a Stripe customer to the account named
  in the session's ``app_user_id`` metadata and marks it subscribed.
* ``invoice.payment_succeeded`` records a payment for that customer. Stripe
  fires it after the checkout event, but our checkout handler may not have
  committed yet, so the customer lookup is retried for a bounded time.

Expected problems (missing metadata, unknown customers, malformed invoices)
raise ``HandledWebhookError``: the delivery is acknowledged and Stripe does not
retry. Anything else propagates so the caller can roll back and report a
non-success status.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from bragfeed.config import get_settings
from bragfeed.models import SubscriptionPayment, User
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.retry import retry_until_found
from api.services.stripe_service import APP_USER_ID_METADATA_KEY

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"


class HandledWebhookError(Exception):
    """An expected, non-retryable condition; acknowledge the delivery anyway."""


class WebhookOutcome(enum.Enum):
    PROCESSED = "processed"
    HANDLED_FAILURE = "handled_failure"
    IGNORED = "ignored"


@dataclass(frozen=True)
class CustomerLookupPolicy:
    attempts: int = 20
    interval: float = 0.25
    sleep: Callable[[float], Awaitable[object]] = field(default=asyncio.sleep, compare=False)


def lookup_policy_from_settings() -> CustomerLookupPolicy:
    settings = get_settings()
    return CustomerLookupPolicy(
        attempts=settings.webhook_customer_lookup_attempts,
        interval=settings.webhook_customer_lookup_interval_seconds,
    )


WebhookHandler = Callable[[AsyncSession, dict, CustomerLookupPolicy], Awaitable[None]]


def _parse_uuid(value: Any) -> uuid.UUID | None:
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


def _customer_id(value: Any) -> str | None:
    """Stripe sends either the customer id or the expanded customer object."""
    if isinstance(value, dict):
        value = value.get("id")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _from_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=UTC)


def _first_line_period(invoice: dict) -> tuple[datetime, datetime]:
    lines = invoice.get("lines")
    items = lines.get("data") if isinstance(lines, dict) else None
    first = items[0] if isinstance(items, list) and items else None
    period = first.get("period") if isinstance(first, dict) else None
    if not isinstance(period, dict):
        raise HandledWebhookError("Invoice line item is missing subscription period information")
    try:
        return _from_epoch(period["start"]), _from_epoch(period["end"])
    except (KeyError, TypeError, ValueError):
        raise HandledWebhookError("Invoice line item is missing subscription period information")


async def _find_user_id_by_customer(db: AsyncSession, customer_id: str) -> uuid.UUID | None:
    result = await db.execute(
        select(User.id).where(User.stripe_customer_id == customer_id).limit(1)
    )
    return result.scalars().first()


async def handle_checkout_session_completed(
    db: AsyncSession, session: dict, policy: CustomerLookupPolicy
) -> None:
    metadata = session.get("metadata") or {}
    raw_user_id = metadata.get(APP_USER_ID_METADATA_KEY) if isinstance(metadata, dict) else None
    if not raw_user_id:
        # TODO: notify ops about orphaned checkout sessions once email delivery exists.
        raise HandledWebhookError(
            "Checkout session completed without app_user_id metadata, cannot link to user"
        )

    user_id = _parse_uuid(raw_user_id)
    if user_id is None:
        raise HandledWebhookError(f"Checkout session has malformed app_user_id: {raw_user_id}")

    customer_id = _customer_id(session.get("customer"))
    if not customer_id:
        raise HandledWebhookError(
            "Checkout session completed without a valid Stripe customer ID, cannot link to user"
        )

    user = await db.get(User, user_id)
    if user is None:
        raise HandledWebhookError(f"Checkout session references unknown user: {user_id}")

    user.stripe_customer_id = customer_id
    user.has_active_subscription = True
    await db.flush()
    logger.info("Linked Stripe customer %s to user %s", customer_id, user_id)


async def handle_invoice_payment_succeeded(
    db: AsyncSession, invoice: dict, policy: CustomerLookupPolicy
) -> None:
    customer_id = _customer_id(invoice.get("customer"))
    if not customer_id:
        raise HandledWebhookError("Invoice is missing customer ID, cannot process payment")

    invoice_id = str(invoice.get("id") or "").strip()
    if not invoice_id:
        raise HandledWebhookError(
            "Invoice is missing ID and is thus a future invoice, payment not processed"
        )

    subscription_start, subscription_end = _first_line_period(invoice)

    user_id = await retry_until_found(
        lambda: _find_user_id_by_customer(db, customer_id),
        attempts=policy.attempts,
        interval=policy.interval,
        sleep=policy.sleep,
    )
    if user_id is None:
        raise HandledWebhookError(f"No user found with Stripe customer ID: {customer_id}")

    existing = await db.execute(
        select(SubscriptionPayment.id).where(SubscriptionPayment.invoice_id == invoice_id)
    )
    if existing.scalars().first() is not None:
        logger.info("Payment for invoice %s already recorded", invoice_id)
    else:
        created = invoice.get("created")
        db.add(
            SubscriptionPayment(
                user_id=user_id,
                stripe_customer_id=customer_id,
                invoice_id=invoice_id,
                amount=int(invoice.get("amount_paid") or 0),
                currency=str(invoice.get("currency") or ""),
                billing_reason=invoice.get("billing_reason"),
                subscription_start=subscription_start,
                subscription_end=subscription_end,
                created_at=_from_epoch(created) if created else datetime.now(UTC),
            )
        )

    await db.execute(
        update(User).where(User.id == user_id).values(has_active_subscription=True)
    )
    await db.flush()


WEBHOOK_HANDLERS: Mapping[str, WebhookHandler] = MappingProxyType(
    {
        CHECKOUT_SESSION_COMPLETED: handle_checkout_session_completed,
        INVOICE_PAYMENT_SUCCEEDED: handle_invoice_payment_succeeded,
    }
)


async def reconcile_event(
    db: AsyncSession,
    event_type: str,
    data: dict,
    policy: CustomerLookupPolicy,
) -> WebhookOutcome:
    """Run the handler registered for ``event_type``.

    Handled failures are logged and reported as an outcome; unexpected
    exceptions propagate to the caller.
    """
    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.warning("No handler registered for event type: %s", event_type)
        return WebhookOutcome.IGNORED

    logger.info("Handling event: %s", event_type)
    try:
        await handler(db, data, policy)
    except HandledWebhookError as exc:
        logger.warning("Handled error for event %s: %s", event_type, exc)
        return WebhookOutcome.HANDLED_FAILURE
    return WebhookOutcome.PROCESSED
