"""Tests for subscription status and checkout endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from api.services.stripe_service import create_checkout_session, map_checkout_exception
from bragfeed.models import SubscriptionPayment, User
from httpx import AsyncClient

STRIPE_SETTINGS = SimpleNamespace(stripe_secret_key="sk_test_123", site_url="https://bragfeed.test/")


@pytest.mark.asyncio
async def test_status_without_payments(db_client: AsyncClient):
    response = await db_client.get("/v1/user/subscription/")

    assert response.status_code == 200
    assert response.json() == {"has_active_subscription": False, "latest_payment": None}


@pytest.mark.asyncio
async def test_status_reports_latest_payment(db_client: AsyncClient, session_factory, user):
    async with session_factory() as session:
        account = await session.get(User, user.id)
        account.stripe_customer_id = "cus_1"
        account.has_active_subscription = True
        for invoice_id, month in (("in_old", 1), ("in_new", 2)):
            session.add(
                SubscriptionPayment(
                    user_id=user.id,
                    stripe_customer_id="cus_1",
                    invoice_id=invoice_id,
                    amount=1900,
                    currency="usd",
                    subscription_start=datetime(2026, month, 1, tzinfo=UTC),
                    subscription_end=datetime(2026, month + 1, 1, tzinfo=UTC),
                    created_at=datetime(2026, month, 1, tzinfo=UTC),
                )
            )
        await session.commit()

    response = await db_client.get("/v1/user/subscription/")

    data = response.json()
    assert data["has_active_subscription"] is True
    assert data["latest_payment"] == {
        "invoice_id": "in_new",
        "amount": 1900,
        "currency": "usd",
        "subscription_end": "2026-03-01T00:00:00+00:00",
    }


@pytest.mark.asyncio
async def test_checkout_returns_session_url(db_client: AsyncClient, user):
    with (
        patch("api.routers.user_subscription.get_settings", return_value=STRIPE_SETTINGS),
        patch(
            "api.routers.user_subscription.create_checkout_session",
            return_value="https://checkout.stripe.test/c/cs_1",
        ) as create,
    ):
        response = await db_client.post(
            "/v1/user/subscription/checkout", json={"price_id": "price_monthly"}
        )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/c/cs_1"}
    args, kwargs = create.call_args
    assert args[0].id == user.id
    assert args[1] == "price_monthly"
    assert kwargs["success_url"] == "https://bragfeed.test/subscription?checkout=success"
    assert kwargs["cancel_url"] == "https://bragfeed.test/subscription?checkout=cancelled"


@pytest.mark.asyncio
async def test_checkout_unconfigured_stripe(db_client: AsyncClient):
    settings = SimpleNamespace(stripe_secret_key="", site_url="https://bragfeed.test")
    with patch("api.routers.user_subscription.get_settings", return_value=settings):
        response = await db_client.post(
            "/v1/user/subscription/checkout", json={"price_id": "price_monthly"}
        )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_checkout_maps_stripe_errors(db_client: AsyncClient):
    with (
        patch("api.routers.user_subscription.get_settings", return_value=STRIPE_SETTINGS),
        patch(
            "api.routers.user_subscription.create_checkout_session",
            side_effect=Exception("No such price: 'price_gone'"),
        ),
    ):
        response = await db_client.post(
            "/v1/user/subscription/checkout", json={"price_id": "price_gone"}
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "Selected plan is no longer available"


def test_create_checkout_session_tags_user_metadata():
    user = User(email="owner@bragfeed.test")
    user.id = "3f0c7c8e-0000-4000-8000-000000000001"
    fake_stripe = MagicMock()
    fake_stripe.checkout.Session.create.return_value = {"url": "https://checkout.stripe.test/x"}

    with patch("api.services.stripe_service._get_stripe_client", return_value=fake_stripe):
        url = create_checkout_session(user, "price_1", "https://s", "https://c")

    assert url == "https://checkout.stripe.test/x"
    kwargs = fake_stripe.checkout.Session.create.call_args.kwargs
    assert kwargs["metadata"] == {"app_user_id": "3f0c7c8e-0000-4000-8000-000000000001"}
    assert kwargs["customer_email"] == "owner@bragfeed.test"
    assert "customer" not in kwargs


def test_create_checkout_session_reuses_existing_customer():
    user = User(email="owner@bragfeed.test", stripe_customer_id="cus_1")
    fake_stripe = MagicMock()
    fake_stripe.checkout.Session.create.return_value = {"url": "https://checkout.stripe.test/y"}

    with patch("api.services.stripe_service._get_stripe_client", return_value=fake_stripe):
        create_checkout_session(user, "price_1", "https://s", "https://c")

    kwargs = fake_stripe.checkout.Session.create.call_args.kwargs
    assert kwargs["customer"] == "cus_1"
    assert "customer_email" not in kwargs


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("No such price: 'price_x'", 400),
        ("No such customer: 'cus_x'", 400),
        ("Connection error", 503),
    ],
)
def test_map_checkout_exception(message, expected):
    status_code, _ = map_checkout_exception(Exception(message))
    assert status_code == expected
