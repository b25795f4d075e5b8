from .cache import (
    AccountInvalidationResult,
    CachedPayloadResponse,
    InvalidateCacheRequest,
    UserInvalidationResult,
)
from .payments import (
    NormalizedPayment,
    NormalizedSubscription,
    PaymentSource,
    PaymentSummary,
    RecentPayments,
)
from .webhook import WebhookAck, WebhookEnvelope

__all__ = [
    "AccountInvalidationResult",
    "CachedPayloadResponse",
    "InvalidateCacheRequest",
    "NormalizedPayment",
    "NormalizedSubscription",
    "PaymentSource",
    "PaymentSummary",
    "RecentPayments",
    "UserInvalidationResult",
    "WebhookAck",
    "WebhookEnvelope",
]
