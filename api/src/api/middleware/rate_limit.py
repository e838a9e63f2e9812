"""Per-user, per-event rate limiting for individual routes."""

from __future__ import annotations

import logging
from collections.abc import Callable

from bragfeed.models import User
from fastapi import Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_current_user, get_rate_limiter
from api.services.rate_limiter import RateLimitConfig, RateLimiter

logger = logging.getLogger(__name__)

LimitSource = RateLimitConfig | Callable[[], RateLimitConfig]


class RateLimitExceeded(Exception):
    def __init__(self, config: RateLimitConfig, retry_after: int):
        self.config = config
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for {config.event_type}")

    def to_payload(self) -> dict:
        return {
            "error": "Rate limit exceeded",
            "message": (
                f"Too many {self.config.event_type} requests. "
                f"Limit: {self.config.max_requests} per {self.config.window_seconds} seconds"
            ),
            "retryAfter": self.retry_after,
        }


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=exc.to_payload(),
        headers={"Retry-After": str(exc.retry_after)},
    )


def _resolve(source: LimitSource) -> RateLimitConfig:
    return source if isinstance(source, RateLimitConfig) else source()


def rate_limited(*limits: LimitSource):
    """Build a route dependency enforcing ``limits`` in order.

    Limits may be given as configs or as zero-argument callables returning
    one, so values read from settings are resolved per request. The first
    rejection raises ``RateLimitExceeded``; later limits are not evaluated
    and record nothing.
    """

    async def _enforce(
        user: User = Depends(get_current_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> User:
        configs = [_resolve(source) for source in limits]
        rejected, decision = await limiter.admit_all(str(user.id), configs)
        if rejected is not None:
            logger.info("Rate limit hit: user=%s event=%s", user.id, rejected.event_type)
            raise RateLimitExceeded(rejected, decision.retry_after or rejected.window_seconds)
        return user

    return _enforce
