"""User account model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Text, Uuid, false, func, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bragfeed.models.base import Base

if TYPE_CHECKING:
    from bragfeed.models.business import Business
    from bragfeed.models.subscription_payment import SubscriptionPayment


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text)
    # Set by checkout.session.completed; the only link from a Stripe customer to an account.
    stripe_customer_id: Mapped[str | None] = mapped_column(Text, unique=True)
    has_active_subscription: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    businesses: Mapped[list[Business]] = relationship(back_populates="user", lazy="noload")
    payments: Mapped[list[SubscriptionPayment]] = relationship(
        back_populates="user", lazy="noload"
    )
