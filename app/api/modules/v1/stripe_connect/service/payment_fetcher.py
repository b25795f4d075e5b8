"""
Reads recent payments, subscriptions and summaries from a connected Stripe account.

PaymentIntents are the primary source. When listing them fails or returns nothing,
charges are listed instead. Both are normalized into ``NormalizedPayment`` so that the
cache and summary code never needs to know which source was used.

Fields that Stripe exposes in several places are resolved with ordered extractor
chains: the first extractor that yields a value wins.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from app.api.core.config import settings
from app.api.modules.v1.stripe_connect.errors import UpstreamFetchError
from app.api.modules.v1.stripe_connect.schemas.payments import (
    NormalizedPayment,
    NormalizedSubscription,
    PaymentSource,
    PaymentSummary,
    RecentPayments,
)
from app.api.modules.v1.stripe_connect.service.extractors import (
    Extractor,
    field,
    first_available,
    mapping_at,
    via,
)
from app.api.modules.v1.stripe_connect.stripe import stripe_adapter

logger = logging.getLogger(__name__)


# The charge attached to a PaymentIntent: legacy ``charges`` list or expanded ``latest_charge``
_NESTED_CHARGE: List[Extractor] = [
    mapping_at("charges", "data", 0),
    mapping_at("latest_charge"),
]


def nested_charge(payment_intent: Any) -> Optional[Mapping]:
    return first_available(payment_intent, _NESTED_CHARGE)


PI_AMOUNT: List[Extractor] = [field("amount"), via(nested_charge, "amount")]
PI_CURRENCY: List[Extractor] = [field("currency"), via(nested_charge, "currency")]
PI_CUSTOMER: List[Extractor] = [
    field("receipt_email"),
    field("customer_details", "email"),
    via(nested_charge, "billing_details", "email"),
    via(nested_charge, "receipt_email"),
]
PI_FAILURE_CODE: List[Extractor] = [
    field("last_payment_error", "code"),
    via(nested_charge, "failure_code"),
    via(nested_charge, "outcome", "reason"),
]
PI_FAILURE_MESSAGE: List[Extractor] = [
    field("last_payment_error", "message"),
    via(nested_charge, "failure_message"),
    via(nested_charge, "outcome", "seller_message"),
]

CHARGE_CUSTOMER: List[Extractor] = [field("billing_details", "email"), field("receipt_email")]
CHARGE_FAILURE_CODE: List[Extractor] = [field("failure_code"), field("outcome", "reason")]
CHARGE_FAILURE_MESSAGE: List[Extractor] = [
    field("failure_message"),
    field("outcome", "seller_message"),
]

SUBSCRIPTION_ITEM = mapping_at("items", "data", 0)
SUBSCRIPTION_CUSTOMER: List[Extractor] = [field("customer", "id"), field("customer")]
SUBSCRIPTION_PERIOD_END: List[Extractor] = [
    field("current_period_end"),
    via(SUBSCRIPTION_ITEM, "current_period_end"),
]
SUBSCRIPTION_AMOUNT: List[Extractor] = [
    via(SUBSCRIPTION_ITEM, "price", "unit_amount"),
    field("plan", "amount"),
]
SUBSCRIPTION_CURRENCY: List[Extractor] = [
    via(SUBSCRIPTION_ITEM, "price", "currency"),
    field("plan", "currency"),
    field("currency"),
]
SUBSCRIPTION_INTERVAL: List[Extractor] = [
    via(SUBSCRIPTION_ITEM, "price", "recurring", "interval"),
    field("plan", "interval"),
]
SUBSCRIPTION_QUANTITY: List[Extractor] = [via(SUBSCRIPTION_ITEM, "quantity"), field("quantity")]


def normalize_payment_intent(payment_intent: Mapping) -> NormalizedPayment:
    status = payment_intent.get("status")
    return NormalizedPayment(
        id=payment_intent["id"],
        source=PaymentSource.PAYMENT_INTENT,
        amount=first_available(payment_intent, PI_AMOUNT) or 0,
        currency=first_available(payment_intent, PI_CURRENCY),
        created=payment_intent.get("created"),
        status=status,
        paid=status == "succeeded",
        customer=first_available(payment_intent, PI_CUSTOMER),
        failure_code=first_available(payment_intent, PI_FAILURE_CODE),
        failure_message=first_available(payment_intent, PI_FAILURE_MESSAGE),
    )


def normalize_charge(charge: Mapping) -> NormalizedPayment:
    status = charge.get("status")
    return NormalizedPayment(
        id=charge["id"],
        source=PaymentSource.CHARGE,
        amount=charge.get("amount") or 0,
        currency=charge.get("currency"),
        created=charge.get("created"),
        status=status,
        paid=bool(charge.get("paid")) and status == "succeeded",
        customer=first_available(charge, CHARGE_CUSTOMER),
        failure_code=first_available(charge, CHARGE_FAILURE_CODE),
        failure_message=first_available(charge, CHARGE_FAILURE_MESSAGE),
    )


def normalize_subscription(subscription: Mapping) -> NormalizedSubscription:
    return NormalizedSubscription(
        id=subscription["id"],
        status=subscription.get("status"),
        customer=first_available(subscription, SUBSCRIPTION_CUSTOMER),
        created=subscription.get("created"),
        current_period_end=first_available(subscription, SUBSCRIPTION_PERIOD_END),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        amount=first_available(subscription, SUBSCRIPTION_AMOUNT),
        currency=first_available(subscription, SUBSCRIPTION_CURRENCY),
        interval=first_available(subscription, SUBSCRIPTION_INTERVAL),
        quantity=first_available(subscription, SUBSCRIPTION_QUANTITY),
    )


def is_failed_payment(payment: NormalizedPayment) -> bool:
    return payment.status == "failed" or (not payment.paid and payment.failure_code is not None)


def summarize_payments(payments: Iterable[NormalizedPayment]) -> PaymentSummary:
    payments = list(payments)
    return PaymentSummary(
        total_volume=sum(p.amount for p in payments if p.paid),
        currency=next((p.currency for p in payments if p.currency), None),
        total_count=len(payments),
        failed_count=sum(1 for p in payments if is_failed_payment(p)),
    )


async def get_recent_payments(
    stripe_account: str,
    limit: Optional[int] = None,
    created_gte: Optional[int] = None,
    created_lte: Optional[int] = None,
) -> RecentPayments:
    """
    Fetch recent payments of a connected account.

    Args:
        stripe_account: connected account id (acct_...)
        limit: maximum number of objects requested from Stripe
        created_gte / created_lte: optional unix-time window

    Returns:
        RecentPayments with ``used_source`` set to the listing that produced the data.

    Raises:
        UpstreamFetchError: if the charges fallback fails as well.
    """
    limit = limit or settings.STRIPE_PAYMENTS_LIMIT
    window = {"created_gte": created_gte, "created_lte": created_lte}

    try:
        intents = await stripe_adapter.list_payment_intents(stripe_account, limit, **window)
        if intents:
            return RecentPayments(
                payments=[normalize_payment_intent(pi) for pi in intents],
                used_source="payment_intents",
            )
        logger.info("No payment intents for %s, falling back to charges", stripe_account)
    except Exception as exc:
        logger.warning(
            "Error fetching payment_intents for %s, falling back to charges: %s",
            stripe_account,
            str(exc),
        )

    try:
        charges = await stripe_adapter.list_charges(stripe_account, limit, **window)
        payments = [normalize_charge(charge) for charge in charges]
    except Exception as exc:
        logger.error("Error fetching charges for %s: %s", stripe_account, str(exc))
        raise UpstreamFetchError(
            f"Could not fetch payments for Stripe account {stripe_account}"
        ) from exc

    return RecentPayments(payments=payments, used_source="charges")


class StripeDataFetcher:
    """Upstream reads backing each cache variant."""

    def __init__(self, payments_limit: Optional[int] = None, subscriptions_limit: Optional[int] = None):
        self.payments_limit = payments_limit or settings.STRIPE_PAYMENTS_LIMIT
        self.subscriptions_limit = subscriptions_limit or settings.STRIPE_SUBSCRIPTIONS_LIMIT

    async def fetch_charges(
        self, stripe_account: str, range_days: int, now: datetime
    ) -> RecentPayments:
        since = now - timedelta(days=range_days)
        return await get_recent_payments(
            stripe_account, self.payments_limit, created_gte=int(since.timestamp())
        )

    async def fetch_subscriptions(self, stripe_account: str) -> List[NormalizedSubscription]:
        try:
            subscriptions = await stripe_adapter.list_subscriptions(
                stripe_account, self.subscriptions_limit
            )
            return [normalize_subscription(sub) for sub in subscriptions]
        except Exception as exc:
            logger.error("Error fetching subscriptions for %s: %s", stripe_account, str(exc))
            raise UpstreamFetchError(
                f"Could not fetch subscriptions for Stripe account {stripe_account}"
            ) from exc

    async def fetch_summary(
        self, stripe_account: str, range_days: int, offset_days: int, now: datetime
    ) -> PaymentSummary:
        window_end = now - timedelta(days=offset_days)
        window_start = window_end - timedelta(days=range_days)
        recent = await get_recent_payments(
            stripe_account,
            self.payments_limit,
            created_gte=int(window_start.timestamp()),
            created_lte=int(window_end.timestamp()),
        )
        return summarize_payments(recent.payments)
