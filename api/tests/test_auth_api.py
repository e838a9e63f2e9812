"""Tests for bearer/cookie JWT authentication."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from api.dependencies import USER_AUTH_COOKIE_NAME
from bragfeed.config import get_settings
from bragfeed.models import User
from httpx import AsyncClient
from jose import jwt


def _token(
    sub: str, *, secret: str | None = None, expires_in: timedelta = timedelta(hours=1)
) -> str:
    settings = get_settings()
    claims = {"sub": sub, "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(claims, secret or settings.secret_key, algorithm=settings.jwt_algorithm)


def _account(**overrides) -> User:
    values = {
        "id": uuid.uuid4(),
        "email": "owner@bragfeed.test",
        "has_active_subscription": False,
        "is_active": True,
    }
    values.update(overrides)
    return User(**values)


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(client: AsyncClient):
    response = await client.get("/v1/user/subscription/")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing token"


@pytest.mark.asyncio
async def test_bearer_token_authenticates(client: AsyncClient, mock_db):
    account = _account()
    mock_db.get.return_value = account

    response = await client.get(
        "/v1/user/subscription/",
        headers={"Authorization": f"Bearer {_token(str(account.id))}"},
    )

    assert response.status_code == 200
    assert response.json()["has_active_subscription"] is False
    mock_db.get.assert_awaited_once_with(User, account.id)


@pytest.mark.asyncio
async def test_cookie_token_authenticates(client: AsyncClient, mock_db):
    account = _account()
    mock_db.get.return_value = account
    client.cookies.set(USER_AUTH_COOKIE_NAME, _token(str(account.id)))

    response = await client.get("/v1/user/subscription/")

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        _token(str(uuid.uuid4()), secret="wrong-secret"),
        _token(str(uuid.uuid4()), expires_in=timedelta(minutes=-5)),
        _token("not-a-uuid"),
    ],
)
async def test_invalid_tokens_are_rejected(client: AsyncClient, token):
    response = await client.get(
        "/v1/user/subscription/", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


@pytest.mark.asyncio
async def test_inactive_or_unknown_user_is_rejected(client: AsyncClient, mock_db):
    account = _account(is_active=False)
    mock_db.get.return_value = account
    headers = {"Authorization": f"Bearer {_token(str(account.id))}"}

    inactive = await client.get("/v1/user/subscription/", headers=headers)
    mock_db.get.return_value = None
    unknown = await client.get("/v1/user/subscription/", headers=headers)

    assert inactive.status_code == 401
    assert unknown.status_code == 401
    assert unknown.json()["detail"] == "User not found"
