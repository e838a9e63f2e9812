"""Sliding-window rate limiting over the durable rate_limit_events log."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from bragfeed.models import RateLimitEvent
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _count_since(user_id: str, event_type: str, window_start: datetime):
    return select(func.count(RateLimitEvent.id)).where(
        RateLimitEvent.user_id == user_id,
        RateLimitEvent.event_type == event_type,
        RateLimitEvent.timestamp >= window_start,
    )


@dataclass(frozen=True)
class RateLimitConfig:
    """How many ``event_type`` actions a user may take per trailing ``window``."""

    event_type: str
    max_requests: int
    window: timedelta

    def __post_init__(self) -> None:
        if not self.event_type:
            raise ValueError("event_type must be non-empty")
        if self.max_requests < 1:
            raise ValueError("max_requests must be positive")
        if self.window <= timedelta(0):
            raise ValueError("window must be positive")

    @property
    def window_seconds(self) -> int:
        return round(self.window.total_seconds())


class Admission(enum.Enum):
    ADMITTED = "admitted"
    REJECTED = "rejected"
    # Store unavailable; let the request through without recording it.
    DEGRADED = "degraded"


@dataclass(frozen=True)
class RateLimitDecision:
    outcome: Admission
    retry_after: int | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not Admission.REJECTED


ADMITTED = RateLimitDecision(Admission.ADMITTED)
DEGRADED = RateLimitDecision(Admission.DEGRADED)


class RateLimiter:
    """Admission gate keyed by (user_id, event_type).

    Every admitted call appends one row and commits it in its own session, so
    the record survives whatever happens to the guarded request. Rejections
    write nothing. Counting and inserting are not locked together: callers
    racing at the boundary can over-admit by one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def admit(self, user_id: str, config: RateLimitConfig) -> RateLimitDecision:
        if not user_id:
            raise ValueError("user_id must be non-empty")

        now = self._clock()
        window_start = now - config.window
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    _count_since(user_id, config.event_type, window_start)
                )
                count = int(result.scalar_one())
                if count >= config.max_requests:
                    return RateLimitDecision(Admission.REJECTED, retry_after=config.window_seconds)

                session.add(
                    RateLimitEvent(user_id=user_id, event_type=config.event_type, timestamp=now)
                )
                await session.commit()
        except Exception as exc:
            logger.warning(
                "Rate limit check failed for %s/%s, allowing request: %s",
                config.event_type,
                user_id,
                exc,
            )
            return DEGRADED
        return ADMITTED

    async def admit_all(
        self, user_id: str, configs: tuple[RateLimitConfig, ...] | list[RateLimitConfig]
    ) -> tuple[RateLimitConfig | None, RateLimitDecision]:
        """Evaluate limits in order, stopping at the first rejection.

        Returns the rejecting config (None when everything passed) and the
        last decision made.
        """
        decision = ADMITTED
        for config in configs:
            decision = await self.admit(user_id, config)
            if not decision.allowed:
                return config, decision
        return None, decision
