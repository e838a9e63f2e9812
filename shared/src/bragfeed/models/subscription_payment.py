"""Recorded subscription payments, one per paid Stripe invoice."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bragfeed.models.base import Base

if TYPE_CHECKING:
    from bragfeed.models.user import User


class SubscriptionPayment(Base):
    __tablename__ = "subscription_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    stripe_customer_id: Mapped[str] = mapped_column(Text, nullable=False)
    invoice_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False)
    billing_reason: Mapped[str | None] = mapped_column(Text)
    subscription_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    subscription_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    user: Mapped[User] = relationship(back_populates="payments")

    __table_args__ = (
        Index("idx_subscription_payments_user", "user_id", "subscription_end"),
    )
