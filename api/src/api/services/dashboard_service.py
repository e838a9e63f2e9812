"""Dashboard aggregates over the usage event log."""

from __future__ import annotations

import math
import uuid
from datetime import UTC, datetime, timedelta

from bragfeed.models import Business, BusinessStats, Event
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.events import API_RESPONSE_EVENT


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _business_id_of(event: Event) -> uuid.UUID | None:
    raw = (event.metadata_json or {}).get("business_id")
    try:
        return uuid.UUID(str(raw)) if raw else None
    except ValueError:
        return None


async def api_stats(db: AsyncSession, user_id: uuid.UUID, *, now: datetime | None = None) -> dict:
    current = now or datetime.now(UTC)
    user_calls = (Event.user_id == user_id, Event.event == API_RESPONSE_EVENT)

    result = await db.execute(
        select(func.count(Event.id), func.min(Event.timestamp)).where(*user_calls)
    )
    total, first_timestamp = result.one()
    total = int(total or 0)

    result = await db.execute(
        select(func.count(Event.id)).where(*user_calls, Event.timestamp >= _month_start(current))
    )
    monthly = int(result.scalar_one() or 0)

    daily_average = 0
    if first_timestamp is not None and total > 0:
        elapsed = current - _as_utc(first_timestamp)
        days = max(1, elapsed // timedelta(days=1))
        daily_average = math.floor(total / days + 0.5)

    result = await db.execute(
        select(Event).where(*user_calls).order_by(Event.timestamp.desc()).limit(1)
    )
    latest = result.scalars().first()
    latest_call = None
    if latest is not None:
        business_name = None
        business_id = _business_id_of(latest)
        if business_id is not None:
            business = await db.get(Business, business_id)
            business_name = business.name if business else None
        latest_call = {
            "timestamp": _as_utc(latest.timestamp).isoformat(),
            "businessName": business_name,
        }

    return {
        "totalApiCalls": total,
        "monthlyApiCalls": monthly,
        "dailyAverageApiCalls": daily_average,
        "latestApiCall": latest_call,
    }


async def user_businesses(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    """User's businesses with latest stats and API call counts, busiest first."""
    result = await db.execute(
        select(Business).where(Business.user_id == user_id).order_by(Business.created_at)
    )
    businesses = list(result.scalars().all())
    if not businesses:
        return []
    ids = [business.id for business in businesses]

    ranked = (
        select(
            BusinessStats.business_id,
            BusinessStats.review_count,
            BusinessStats.review_score,
            func.row_number()
            .over(
                partition_by=BusinessStats.business_id,
                order_by=BusinessStats.created_at.desc(),
            )
            .label("row_num"),
        )
        .where(BusinessStats.business_id.in_(ids))
        .subquery()
    )
    result = await db.execute(
        select(ranked.c.business_id, ranked.c.review_count, ranked.c.review_score).where(
            ranked.c.row_num == 1
        )
    )
    stats_by_business = {
        row.business_id: {"review_count": row.review_count, "review_score": row.review_score}
        for row in result.all()
    }

    business_key = Event.metadata_json["business_id"].as_string()
    result = await db.execute(
        select(business_key, func.count(Event.id))
        .where(
            Event.event == API_RESPONSE_EVENT,
            business_key.in_([str(business_id) for business_id in ids]),
        )
        .group_by(business_key)
    )
    calls_by_business = {key: int(count) for key, count in result.all()}

    rows = [
        {
            "id": str(business.id),
            "name": business.name,
            "address": business.address,
            "stats": stats_by_business.get(business.id),
            "apiCallCount": calls_by_business.get(str(business.id), 0),
        }
        for business in businesses
    ]
    rows.sort(key=lambda row: row["apiCallCount"], reverse=True)
    return rows
