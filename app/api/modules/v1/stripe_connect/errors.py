"""Errors raised by the Stripe Connect webhook and cache subsystem."""

from fastapi import status


class StripeConnectError(Exception):
    """Base error. ``status_code`` is the HTTP status the API layer maps it to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "STRIPE_CONNECT_ERROR"

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or self.error_code
        super().__init__(self.message)


class WebhookError(StripeConnectError):
    """Webhook delivery rejected"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "WEBHOOK_ERROR"


class SignatureInvalidError(WebhookError):
    """Invalid webhook signature"""

    error_code = "SIGNATURE_INVALID"


class MalformedPayloadError(WebhookError):
    """Malformed webhook payload"""

    error_code = "MALFORMED_PAYLOAD"


class CacheInvalidationError(StripeConnectError):
    """Failed to invalidate Stripe cache"""

    error_code = "CACHE_INVALIDATION_FAILED"


class UpstreamFetchError(StripeConnectError):
    """Failed to fetch data from Stripe"""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_FETCH_FAILED"


class CacheWriteError(StripeConnectError):
    """Failed to store Stripe data in cache"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "CACHE_WRITE_FAILED"


class StripeAccountNotConnectedError(StripeConnectError):
    """No Stripe account is connected for this user"""

    status_code = status.HTTP_409_CONFLICT
    error_code = "STRIPE_ACCOUNT_NOT_CONNECTED"


class OAuthStateError(StripeConnectError):
    """Invalid or expired Stripe Connect state"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "OAUTH_STATE_INVALID"
