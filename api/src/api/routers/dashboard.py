"""Dashboard data endpoints."""

from __future__ import annotations

from bragfeed.models import User
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_db
from api.services.dashboard_service import api_stats, user_businesses

router = APIRouter()


@router.get("/api-stats")
async def get_api_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await api_stats(db, user.id)


@router.get("/get-user-businesses")
async def get_user_businesses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"businesses": await user_businesses(db, user.id)}
