"""Google reviews stored per business."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bragfeed.models.base import Base

if TYPE_CHECKING:
    from bragfeed.models.business import Business


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(Text, nullable=False)
    author_name: Mapped[str | None] = mapped_column(Text)
    author_image: Mapped[str | None] = mapped_column(Text)
    # Stored in the "datetime" column.
    reviewed_at: Mapped[datetime | None] = mapped_column("datetime", DateTime(timezone=True))
    link: Mapped[str | None] = mapped_column(Text)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comments: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    business: Mapped[Business] = relationship(back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("business_id", "external_id", name="uq_reviews_business_external"),
        Index("idx_reviews_business_datetime", "business_id", "datetime"),
    )
