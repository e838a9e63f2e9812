"""Business ownership, review selection and refresh from the review source."""

from __future__ import annotations

import logging
import uuid

from bragfeed.models import Business, BusinessStats, Review
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.review_source import ReviewRecord, ReviewSource

logger = logging.getLogger(__name__)

REFRESH_REVIEW_LIMIT = 100


async def get_owned_business(
    db: AsyncSession, business_id: uuid.UUID, user_id: uuid.UUID
) -> Business | None:
    result = await db.execute(
        select(Business).where(Business.id == business_id, Business.user_id == user_id).limit(1)
    )
    return result.scalars().first()


async def latest_stats(db: AsyncSession, business_id: uuid.UUID) -> BusinessStats | None:
    result = await db.execute(
        select(BusinessStats)
        .where(BusinessStats.business_id == business_id)
        .order_by(BusinessStats.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def select_business_reviews(
    db: AsyncSession, business_id: uuid.UUID, *, min_rating: int = 1
) -> list[Review]:
    """Reviews rated at least ``min_rating``, newest first."""
    result = await db.execute(
        select(Review)
        .where(Review.business_id == business_id, Review.rating >= min_rating)
        .order_by(Review.reviewed_at.desc().nulls_last(), Review.created_at.desc())
    )
    return list(result.scalars().all())


async def review_summary(db: AsyncSession, business_id: uuid.UUID):
    """Stored review count and the creation time of the newest stored review."""
    result = await db.execute(
        select(func.count(Review.id), func.max(Review.created_at)).where(
            Review.business_id == business_id
        )
    )
    count, last_created = result.one()
    return int(count or 0), last_created


def serialize_review(review: Review) -> dict:
    return {
        "id": str(review.id),
        "author_name": review.author_name,
        "author_image": review.author_image,
        "datetime": review.reviewed_at.isoformat() if review.reviewed_at else None,
        "link": review.link,
        "rating": review.rating,
        "comments": review.comments,
    }


def _apply_record(review: Review, record: ReviewRecord) -> None:
    review.rating = record.rating
    review.author_name = record.author_name
    review.author_image = record.author_image
    review.reviewed_at = record.reviewed_at
    review.link = record.link
    review.comments = record.comments


async def refresh_business(
    db: AsyncSession,
    business: Business,
    source: ReviewSource,
    *,
    review_limit: int = REFRESH_REVIEW_LIMIT,
) -> tuple[BusinessStats, int]:
    """Append a stats snapshot and upsert reviews by external id.

    Returns the new snapshot and the number of reviews received.
    """
    snapshot = await source.fetch_stats(business.place_id)
    stats = BusinessStats(
        business_id=business.id,
        review_count=snapshot.review_count,
        review_score=snapshot.review_score,
    )
    db.add(stats)

    records = await source.fetch_reviews(business.place_id, review_limit)
    external_ids = [record.external_id for record in records]
    existing: dict[str, Review] = {}
    if external_ids:
        result = await db.execute(
            select(Review).where(
                Review.business_id == business.id,
                Review.external_id.in_(external_ids),
            )
        )
        existing = {review.external_id: review for review in result.scalars().all()}

    for record in records:
        review = existing.get(record.external_id)
        if review is None:
            review = Review(business_id=business.id, external_id=record.external_id)
            db.add(review)
            existing[record.external_id] = review
        _apply_record(review, record)

    await db.flush()
    logger.info(
        "Refreshed business %s: %s reviews, score=%s",
        business.id,
        len(records),
        snapshot.review_score,
    )
    return stats, len(records)
