"""Stripe SDK wrapper for checkout and webhook verification."""

from __future__ import annotations

import json
import logging

import stripe as stripe_sdk
from bragfeed.config import get_settings
from bragfeed.models import User

logger = logging.getLogger(__name__)

APP_USER_ID_METADATA_KEY = "app_user_id"


def _get_stripe_client(*, require_secret_key: bool = True):
    settings = get_settings()
    if require_secret_key and not settings.stripe_secret_key:
        raise RuntimeError("Stripe is not configured")
    if settings.stripe_secret_key:
        stripe_sdk.api_key = settings.stripe_secret_key
    return stripe_sdk


def verify_webhook_signature(payload: bytes, sig_header: str) -> dict:
    """Verify a Stripe webhook signature and return the decoded event.

    Raises RuntimeError when no webhook secret is configured, and the Stripe
    SDK's SignatureVerificationError (or ValueError for a body that is not
    JSON) when the delivery cannot be trusted.
    """
    settings = get_settings()
    if not settings.stripe_webhook_secret:
        raise RuntimeError("Stripe webhook secret is not configured")
    stripe_client = _get_stripe_client(require_secret_key=False)
    body = payload.decode("utf-8")
    stripe_client.WebhookSignature.verify_header(body, sig_header, settings.stripe_webhook_secret)
    event = json.loads(body)
    if not isinstance(event, dict):
        raise ValueError("Webhook payload is not a JSON object")
    return event


def create_checkout_session(user: User, price_id: str, success_url: str, cancel_url: str) -> str:
    """Create a subscription Checkout session tagged with the app user, return its URL."""
    stripe_client = _get_stripe_client()
    session_payload: dict[str, object] = {
        "mode": "subscription",
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "client_reference_id": str(user.id),
        "metadata": {APP_USER_ID_METADATA_KEY: str(user.id)},
        "allow_promotion_codes": True,
    }
    if user.stripe_customer_id:
        session_payload["customer"] = user.stripe_customer_id
    else:
        session_payload["customer_email"] = user.email

    session = stripe_client.checkout.Session.create(**session_payload)
    return session["url"]


def map_checkout_exception(exc: Exception) -> tuple[int, str]:
    """Map Stripe checkout errors to client-safe messages."""
    message = str(exc).strip()
    lowered = message.lower()

    if "no such price" in lowered or ("price" in lowered and "invalid" in lowered):
        return 400, "Selected plan is no longer available"

    if "customer" in lowered and ("invalid" in lowered or "no such" in lowered):
        return 400, "Unable to start checkout for this account"

    if message:
        logger.warning("Stripe checkout error: %s", message)
    else:
        logger.warning("Stripe checkout error: %s", exc.__class__.__name__)
    return 503, "Unable to create checkout session. Please try again shortly."
