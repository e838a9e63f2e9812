"""FastAPI dependency injection."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

from bragfeed.config import get_settings
from bragfeed.database import get_session_factory
from bragfeed.models import User
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.rate_limiter import RateLimiter
from api.services.review_source import ReviewSource

USER_AUTH_COOKIE_NAME = "bragfeed_user_token"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_session_factory())


def get_review_source(request: Request) -> ReviewSource:
    source = getattr(request.app.state, "review_source", None)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Review source is not configured",
        )
    return source


def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth[7:].strip()
        return token or None
    return None


def _extract_cookie_token(request: Request) -> str | None:
    cookie_token = request.cookies.get(USER_AUTH_COOKIE_NAME, "").strip()
    return cookie_token or None


def _decode_token(request: Request) -> dict:
    """Decode JWT from Authorization header or the auth cookie."""
    settings = get_settings()
    raw_token = _extract_bearer_token(request) or _extract_cookie_token(request)
    if not raw_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        payload = jwt.decode(raw_token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return payload


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    payload = _decode_token(request)
    try:
        user_id = uuid.UUID(str(payload.get("sub") or "").strip())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user
