"""SQLAlchemy ORM models for Bragfeed."""

from bragfeed.models.base import Base
from bragfeed.models.business import Business, BusinessStats
from bragfeed.models.event import Event
from bragfeed.models.rate_limit_event import RateLimitEvent
from bragfeed.models.review import Review
from bragfeed.models.stripe_webhook_event import StripeWebhookEvent
from bragfeed.models.subscription_payment import SubscriptionPayment
from bragfeed.models.user import User

__all__ = [
    "Base",
    "Business",
    "BusinessStats",
    "Event",
    "RateLimitEvent",
    "Review",
    "StripeWebhookEvent",
    "SubscriptionPayment",
    "User",
]
