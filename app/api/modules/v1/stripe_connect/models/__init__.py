from .stripe_cache import (
    ALLOWED_RANGE_DAYS,
    StripeChargesCache,
    StripeSubscriptionsCache,
    StripeSummaryCache,
)
from .webhook_event import WebhookEvent, WebhookEventStatus

__all__ = [
    "ALLOWED_RANGE_DAYS",
    "StripeChargesCache",
    "StripeSubscriptionsCache",
    "StripeSummaryCache",
    "WebhookEvent",
    "WebhookEventStatus",
]
