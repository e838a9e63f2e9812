"""Connected Google Business Profiles and their rating snapshots."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bragfeed.models.base import Base

if TYPE_CHECKING:
    from bragfeed.models.review import Review
    from bragfeed.models.user import User


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(Text)
    place_id: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    minimum_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    user: Mapped[User] = relationship(back_populates="businesses")
    stats: Mapped[list[BusinessStats]] = relationship(back_populates="business", lazy="noload")
    reviews: Mapped[list[Review]] = relationship(back_populates="business", lazy="noload")

    __table_args__ = (
        CheckConstraint("minimum_score BETWEEN 1 AND 5", name="ck_business_minimum_score"),
        Index("idx_businesses_user", "user_id"),
    )


class BusinessStats(Base):
    __tablename__ = "business_stats"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    review_count: Mapped[int | None] = mapped_column(Integer)
    review_score: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    business: Mapped[Business] = relationship(back_populates="stats")

    __table_args__ = (
        Index("idx_business_stats_business_time", "business_id", "created_at"),
    )
