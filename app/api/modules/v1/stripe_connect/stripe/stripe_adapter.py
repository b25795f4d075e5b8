import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import stripe

from app.api.core.config import settings

_DEFAULT_TIMEOUT = settings.STRIPE_API_TIMEOUT

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY
# The payment fetcher owns the only fallback; the SDK must not retry on its own.
stripe.max_network_retries = 0


async def _run_blocking(
    fn: Callable[..., Any], *args, timeout: Optional[float] = None, **kwargs
) -> Any:
    """
    Execute blocking function in threadpool and apply an asyncio timeout.

    Args:
        fn: blocking callable
        *args, **kwargs: passed through
        timeout: overall await timeout in seconds

    Returns:
        Result of fn

    Raises:
        asyncio.TimeoutError if operation did not complete in time.
        Any exception raised by fn.
    """
    loop = asyncio.get_running_loop()

    def blocking():
        return fn(*args, **kwargs)

    future = loop.run_in_executor(None, blocking)
    wait_timeout = timeout or _DEFAULT_TIMEOUT
    return await asyncio.wait_for(future, timeout=wait_timeout)


def _to_plain(value: Any) -> Any:
    """
    Convert Stripe SDK objects into plain dicts and lists.

    Newer SDK releases no longer subclass ``dict``, so nothing past this module
    should touch a ``StripeObject`` directly.
    """
    if isinstance(value, stripe.StripeObject):
        value = value.to_dict()
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    return value


def _list_data(result: Any) -> List[Dict[str, Any]]:
    return list(_to_plain(result).get("data") or [])


def _created_filter(
    created_gte: Optional[int] = None, created_lte: Optional[int] = None
) -> Dict[str, int]:
    created: Dict[str, int] = {}
    if created_gte is not None:
        created["gte"] = int(created_gte)
    if created_lte is not None:
        created["lte"] = int(created_lte)
    return created


async def list_payment_intents(
    stripe_account: str,
    limit: int = 100,
    created_gte: Optional[int] = None,
    created_lte: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    List payment intents of a connected account with the latest charge expanded.

    Args:
        stripe_account: connected account id (acct_...)
        limit: page size
        created_gte / created_lte: optional unix-time window

    Returns:
        The ``data`` list of the Stripe list response.
    """
    params: Dict[str, Any] = {"limit": limit, "expand": ["data.latest_charge"]}
    created = _created_filter(created_gte, created_lte)
    if created:
        params["created"] = created

    logger.debug("Listing payment intents for %s params=%s", stripe_account, params)
    result = await _run_blocking(
        stripe.PaymentIntent.list, stripe_account=stripe_account, **params
    )
    return _list_data(result)


async def list_charges(
    stripe_account: str,
    limit: int = 100,
    created_gte: Optional[int] = None,
    created_lte: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """List charges of a connected account within an optional creation window."""
    params: Dict[str, Any] = {"limit": limit}
    created = _created_filter(created_gte, created_lte)
    if created:
        params["created"] = created

    logger.debug("Listing charges for %s params=%s", stripe_account, params)
    result = await _run_blocking(stripe.Charge.list, stripe_account=stripe_account, **params)
    return _list_data(result)


async def list_subscriptions(stripe_account: str, limit: int = 100) -> List[Dict[str, Any]]:
    """List subscriptions of every status for a connected account."""
    logger.debug("Listing subscriptions for %s", stripe_account)
    result = await _run_blocking(
        stripe.Subscription.list,
        stripe_account=stripe_account,
        limit=limit,
        status="all",
    )
    return _list_data(result)


def verify_webhook_signature(payload: str, header: str, secret: str) -> None:
    """
    Verify the ``Stripe-Signature`` header against the raw payload.

    Raises:
        stripe.SignatureVerificationError if the signature does not match,
        is malformed, or is outside the tolerance window.
    """
    stripe.WebhookSignature.verify_header(
        payload, header, secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
    )


def build_connect_authorize_url(state: str) -> str:
    """Stripe Connect OAuth authorize URL carrying the one-time ``state``."""
    return stripe.OAuth.authorize_url(
        client_id=settings.STRIPE_CONNECT_CLIENT_ID,
        response_type="code",
        scope=settings.STRIPE_CONNECT_SCOPE,
        state=state,
    )


async def exchange_connect_code(code: str) -> Dict[str, Any]:
    """
    Exchange an OAuth authorization code for the connected account credentials.

    Returns:
        The token response; ``stripe_user_id`` holds the connected account id.
    """
    logger.info("Exchanging Stripe Connect authorization code")
    token = await _run_blocking(
        stripe.OAuth.token, grant_type="authorization_code", code=code
    )
    return _to_plain(token)


async def deauthorize_connect_account(stripe_account: str) -> Dict[str, Any]:
    """Revoke the platform's access to a connected account."""
    logger.info("Deauthorizing Stripe account %s", stripe_account)
    result = await _run_blocking(
        stripe.OAuth.deauthorize,
        client_id=settings.STRIPE_CONNECT_CLIENT_ID,
        stripe_user_id=stripe_account,
    )
    return _to_plain(result)
