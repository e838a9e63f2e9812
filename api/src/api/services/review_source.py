"""Interface to the upstream review provider (Google Business Profiles)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class ReviewRecord:
    external_id: str
    rating: int
    author_name: str | None = None
    author_image: str | None = None
    reviewed_at: datetime | None = None
    link: str | None = None
    comments: str | None = None


@dataclass(frozen=True)
class BusinessSnapshot:
    review_count: int | None
    review_score: float | None


class ReviewSource(Protocol):
    async def fetch_stats(self, place_id: str) -> BusinessSnapshot: ...

    async def fetch_reviews(self, place_id: str, limit: int) -> list[ReviewRecord]: ...
