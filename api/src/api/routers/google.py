"""Review feed and business management endpoints."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, timedelta

from bragfeed.config import get_settings
from bragfeed.models import User
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_db, get_review_source
from api.middleware.rate_limit import rate_limited
from api.services.business_service import (
    get_owned_business,
    latest_stats,
    refresh_business,
    review_summary,
    select_business_reviews,
    serialize_review,
)
from api.services.events import API_RESPONSE_EVENT, record_event
from api.services.rate_limiter import RateLimitConfig
from api.services.review_source import ReviewSource

logger = logging.getLogger(__name__)
router = APIRouter()


def fetch_reviews_limit() -> RateLimitConfig:
    settings = get_settings()
    return RateLimitConfig(
        event_type="fetch_reviews",
        max_requests=settings.fetch_reviews_max_requests,
        window=timedelta(seconds=settings.fetch_reviews_window_seconds),
    )


def update_reviews_limit() -> RateLimitConfig:
    settings = get_settings()
    return RateLimitConfig(
        event_type="update_reviews",
        max_requests=settings.update_reviews_max_requests,
        window=timedelta(seconds=settings.update_reviews_window_seconds),
    )


class FetchReviewsRequest(BaseModel):
    business_id: uuid.UUID


class BusinessRequest(BaseModel):
    businessId: uuid.UUID


class MinimumScoreRequest(BaseModel):
    businessId: uuid.UUID
    minimumScore: int = Field(ge=1, le=5)


async def _require_business(db: AsyncSession, business_id: uuid.UUID, user: User):
    business = await get_owned_business(db, business_id, user.id)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


@router.post("/fetch-reviews")
async def fetch_reviews(
    req: FetchReviewsRequest,
    user: User = Depends(rate_limited(fetch_reviews_limit)),
    db: AsyncSession = Depends(get_db),
):
    """Serve the review feed, filtered by the business's minimum score."""
    business = await _require_business(db, req.business_id, user)
    reviews = await select_business_reviews(db, business.id, min_rating=business.minimum_score)
    record_event(db, API_RESPONSE_EVENT, user.id, {"business_id": str(business.id)})
    return {
        "business_id": str(business.id),
        "minimum_score": business.minimum_score,
        "reviews": [serialize_review(review) for review in reviews],
    }


@router.post("/get-business-details")
async def get_business_details(
    req: BusinessRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    business = await _require_business(db, req.businessId, user)
    stats = await latest_stats(db, business.id)
    available, last_refreshed = await review_summary(db, business.id)
    reviews = await select_business_reviews(db, business.id)

    if last_refreshed is not None and last_refreshed.tzinfo is None:
        last_refreshed = last_refreshed.replace(tzinfo=UTC)

    return {
        "business": {
            "id": str(business.id),
            "name": business.name,
            "place_id": business.place_id,
            "address": business.address,
            "minimum_score": business.minimum_score,
            "stats": {
                "review_count": stats.review_count if stats else None,
                "review_score": stats.review_score if stats else None,
            },
        },
        "reviews": [serialize_review(review) for review in reviews],
        "available_reviews": available,
        "last_refreshed": last_refreshed.isoformat() if last_refreshed else None,
    }


@router.post("/update-minimum-score")
async def update_minimum_score(
    req: MinimumScoreRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    business = await _require_business(db, req.businessId, user)
    business.minimum_score = req.minimumScore
    return {"success": True}


@router.post("/refresh-business-details")
async def refresh_business_details(
    req: BusinessRequest,
    user: User = Depends(rate_limited(update_reviews_limit)),
    db: AsyncSession = Depends(get_db),
    source: ReviewSource = Depends(get_review_source),
):
    """Pull the latest stats and reviews for a business from the review source."""
    business = await _require_business(db, req.businessId, user)
    await refresh_business(db, business, source)
    metadata = {"business_id": str(business.id)}
    record_event(db, "update_reviews", user.id, metadata)
    record_event(db, "update_stats", user.id, metadata)
    return {"success": True}
