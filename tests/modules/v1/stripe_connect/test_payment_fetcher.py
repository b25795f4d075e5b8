"""
Tests for payment normalization and the payment_intents -> charges fallback.

Stripe SDK calls are replaced by patching the adapter functions.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
import stripe

from app.api.modules.v1.stripe_connect.errors import UpstreamFetchError
from app.api.modules.v1.stripe_connect.schemas.payments import NormalizedPayment, PaymentSource
from app.api.modules.v1.stripe_connect.service.extractors import (
    field,
    first_available,
    mapping_at,
)
from app.api.modules.v1.stripe_connect.service.payment_fetcher import (
    StripeDataFetcher,
    get_recent_payments,
    is_failed_payment,
    normalize_charge,
    normalize_payment_intent,
    normalize_subscription,
    summarize_payments,
)

ADAPTER = "app.api.modules.v1.stripe_connect.service.payment_fetcher.stripe_adapter"


def payment_intent(**overrides):
    pi = {
        "id": "pi_1",
        "object": "payment_intent",
        "amount": 2500,
        "currency": "usd",
        "created": 1700000000,
        "status": "succeeded",
        "receipt_email": "jane@example.com",
        "last_payment_error": None,
        "latest_charge": None,
    }
    pi.update(overrides)
    return pi


def charge(**overrides):
    ch = {
        "id": "ch_1",
        "object": "charge",
        "amount": 1000,
        "currency": "eur",
        "created": 1700000100,
        "status": "succeeded",
        "paid": True,
        "billing_details": {"email": "bob@example.com"},
        "receipt_email": None,
        "failure_code": None,
        "failure_message": None,
        "outcome": None,
    }
    ch.update(overrides)
    return ch


class TestExtractors:
    def test_first_available_skips_missing_and_empty_values(self):
        obj = {"a": None, "b": "", "c": {"d": "found"}}
        assert first_available(obj, [field("a"), field("b"), field("c", "d")]) == "found"

    def test_first_available_returns_none_when_nothing_matches(self):
        assert first_available({}, [field("x"), field("y", "z")]) is None

    def test_field_handles_list_indexes(self):
        obj = {"items": {"data": [{"quantity": 3}]}}
        assert field("items", "data", 0, "quantity")(obj) == 3
        assert field("items", "data", 1, "quantity")(obj) is None

    def test_mapping_at_ignores_unexpanded_ids(self):
        assert mapping_at("latest_charge")({"latest_charge": "ch_1"}) is None
        assert mapping_at("latest_charge")({"latest_charge": {"id": "ch_1"}}) == {"id": "ch_1"}


class TestNormalizePaymentIntent:
    def test_succeeded_payment_intent(self):
        payment = normalize_payment_intent(payment_intent())

        assert payment.id == "pi_1"
        assert payment.source is PaymentSource.PAYMENT_INTENT
        assert payment.amount == 2500
        assert payment.currency == "usd"
        assert payment.paid is True
        assert payment.customer == "jane@example.com"
        assert payment.failure_code is None

    def test_failure_fields_from_last_payment_error(self):
        pi = payment_intent(
            status="requires_payment_method",
            last_payment_error={"code": "card_declined", "message": "Your card was declined."},
        )
        payment = normalize_payment_intent(pi)

        assert payment.paid is False
        assert payment.failure_code == "card_declined"
        assert payment.failure_message == "Your card was declined."

    def test_failure_code_from_nested_charge_when_no_top_level_error(self):
        pi = payment_intent(
            status="requires_payment_method",
            last_payment_error=None,
            charges={
                "data": [
                    {
                        "id": "ch_9",
                        "failure_code": "insufficient_funds",
                        "failure_message": "Your card has insufficient funds.",
                    }
                ]
            },
        )
        payment = normalize_payment_intent(pi)

        assert payment.failure_code == "insufficient_funds"
        assert payment.failure_message == "Your card has insufficient funds."

    def test_failure_falls_back_to_expanded_latest_charge_outcome(self):
        pi = payment_intent(
            status="requires_payment_method",
            latest_charge={
                "id": "ch_2",
                "failure_code": None,
                "outcome": {"reason": "highest_risk_level", "seller_message": "Blocked"},
                "billing_details": {"email": "risk@example.com"},
            },
            receipt_email=None,
        )
        payment = normalize_payment_intent(pi)

        assert payment.failure_code == "highest_risk_level"
        assert payment.failure_message == "Blocked"
        assert payment.customer == "risk@example.com"

    def test_customer_from_customer_details(self):
        pi = payment_intent(receipt_email=None, customer_details={"email": "cd@example.com"})
        assert normalize_payment_intent(pi).customer == "cd@example.com"

    def test_amount_from_nested_charge_and_default(self):
        assert normalize_payment_intent(
            payment_intent(amount=None, latest_charge={"id": "ch_3", "amount": 700})
        ).amount == 700
        assert normalize_payment_intent(payment_intent(amount=None)).amount == 0


class TestNormalizeCharge:
    def test_paid_requires_paid_flag_and_succeeded_status(self):
        assert normalize_charge(charge()).paid is True
        assert normalize_charge(charge(status="pending")).paid is False
        assert normalize_charge(charge(paid=False)).paid is False

    def test_charge_failure_fields_and_outcome_fallback(self):
        failed = normalize_charge(
            charge(
                status="failed",
                paid=False,
                failure_code=None,
                failure_message=None,
                outcome={"reason": "elevated_risk_level", "seller_message": "Risky"},
            )
        )
        assert failed.source is PaymentSource.CHARGE
        assert failed.failure_code == "elevated_risk_level"
        assert failed.failure_message == "Risky"

    def test_shapes_match_between_sources(self):
        pi = normalize_payment_intent(payment_intent()).model_dump()
        ch = normalize_charge(charge()).model_dump()
        assert pi.keys() == ch.keys()


class TestNormalizeSubscription:
    def test_price_based_subscription(self):
        sub = normalize_subscription(
            {
                "id": "sub_1",
                "status": "active",
                "customer": {"id": "cus_1", "email": "x@example.com"},
                "created": 1700000000,
                "cancel_at_period_end": False,
                "items": {
                    "data": [
                        {
                            "current_period_end": 1702592000,
                            "quantity": 2,
                            "price": {
                                "unit_amount": 4900,
                                "currency": "usd",
                                "recurring": {"interval": "month"},
                            },
                        }
                    ]
                },
            }
        )
        assert sub.customer == "cus_1"
        assert sub.current_period_end == 1702592000
        assert sub.amount == 4900
        assert sub.currency == "usd"
        assert sub.interval == "month"
        assert sub.quantity == 2

    def test_legacy_plan_subscription(self):
        sub = normalize_subscription(
            {
                "id": "sub_2",
                "status": "canceled",
                "customer": "cus_2",
                "current_period_end": 1702592000,
                "cancel_at_period_end": True,
                "plan": {"amount": 1200, "currency": "gbp", "interval": "year"},
                "quantity": 1,
            }
        )
        assert sub.customer == "cus_2"
        assert sub.cancel_at_period_end is True
        assert sub.amount == 1200
        assert sub.currency == "gbp"
        assert sub.interval == "year"
        assert sub.quantity == 1


class TestSummary:
    def test_summarize_payments(self):
        payments = [
            NormalizedPayment(id="a", source="charge", amount=1000, currency="usd", paid=True),
            NormalizedPayment(id="b", source="charge", amount=500, currency="usd", paid=True),
            NormalizedPayment(
                id="c", source="charge", amount=700, paid=False, failure_code="card_declined"
            ),
            NormalizedPayment(id="d", source="charge", amount=300, status="failed"),
            NormalizedPayment(id="e", source="charge", amount=200, status="processing"),
        ]
        summary = summarize_payments(payments)

        assert summary.total_volume == 1500
        assert summary.currency == "usd"
        assert summary.total_count == 5
        assert summary.failed_count == 2

    def test_empty_summary(self):
        summary = summarize_payments([])
        assert summary.total_volume == 0
        assert summary.currency is None
        assert summary.failed_count == 0

    def test_unpaid_without_failure_code_is_not_failed(self):
        assert not is_failed_payment(
            NormalizedPayment(id="x", source="payment_intent", status="requires_action")
        )


@pytest.mark.asyncio
class TestGetRecentPayments:
    async def test_payment_intents_are_primary_source(self):
        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(return_value=[payment_intent()])
            adapter.list_charges = AsyncMock()

            result = await get_recent_payments("acct_123", 50, created_gte=1)

        assert result.used_source == "payment_intents"
        assert [p.id for p in result.payments] == ["pi_1"]
        adapter.list_payment_intents.assert_awaited_once_with(
            "acct_123", 50, created_gte=1, created_lte=None
        )
        adapter.list_charges.assert_not_awaited()

    async def test_zero_payment_intents_fall_back_to_charges(self):
        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(return_value=[])
            adapter.list_charges = AsyncMock(return_value=[charge()])

            result = await get_recent_payments("acct_123", 50)

        assert result.used_source == "charges"
        assert result.payments[0].source is PaymentSource.CHARGE
        adapter.list_charges.assert_awaited_once()

    async def test_payment_intent_error_falls_back_to_charges(self):
        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(
                side_effect=stripe.PermissionError("no access to payment intents")
            )
            adapter.list_charges = AsyncMock(return_value=[charge(), charge(id="ch_2")])

            result = await get_recent_payments("acct_123", 50)

        assert result.used_source == "charges"
        assert len(result.payments) == 2

    async def test_both_sources_failing_raises_upstream_error(self):
        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(side_effect=stripe.APIError("down"))
            adapter.list_charges = AsyncMock(side_effect=stripe.APIError("still down"))

            with pytest.raises(UpstreamFetchError) as excinfo:
                await get_recent_payments("acct_123", 50)

        assert isinstance(excinfo.value.__cause__, stripe.APIError)

    async def test_sdk_list_objects_are_normalized(self):
        listing = stripe.ListObject.construct_from(
            {"object": "list", "data": [payment_intent(latest_charge=charge())]}, "sk_test"
        )

        with patch("stripe.PaymentIntent.list", return_value=listing):
            result = await get_recent_payments("acct_123", 10)

        assert result.used_source == "payment_intents"
        payment = result.payments[0]
        assert (payment.id, payment.amount, payment.currency) == ("pi_1", 2500, "usd")
        assert payment.paid is True

    async def test_sdk_charge_fallback_is_normalized(self):
        empty = stripe.ListObject.construct_from({"object": "list", "data": []}, "sk_test")
        charges = stripe.ListObject.construct_from(
            {
                "object": "list",
                "data": [charge(paid=False, status="failed", failure_code="card_declined")],
            },
            "sk_test",
        )

        with patch("stripe.PaymentIntent.list", return_value=empty), patch(
            "stripe.Charge.list", return_value=charges
        ):
            result = await get_recent_payments("acct_123", 10)

        assert result.used_source == "charges"
        assert result.payments[0].failure_code == "card_declined"
        assert is_failed_payment(result.payments[0])


@pytest.mark.asyncio
class TestStripeDataFetcher:
    async def test_summary_window_is_offset_from_now(self):
        now = datetime(2025, 3, 31, tzinfo=timezone.utc)
        fetcher = StripeDataFetcher(payments_limit=10)

        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(return_value=[payment_intent()])
            summary = await fetcher.fetch_summary("acct_123", 30, 30, now)

        kwargs = adapter.list_payment_intents.await_args.kwargs
        assert kwargs["created_lte"] == int((now - timedelta(days=30)).timestamp())
        assert kwargs["created_gte"] == int((now - timedelta(days=60)).timestamp())
        assert summary.total_volume == 2500

    async def test_charges_window_starts_range_days_ago(self):
        now = datetime(2025, 3, 31, tzinfo=timezone.utc)
        fetcher = StripeDataFetcher(payments_limit=10)

        with patch(ADAPTER) as adapter:
            adapter.list_payment_intents = AsyncMock(return_value=[payment_intent()])
            await fetcher.fetch_charges("acct_123", 7, now)

        kwargs = adapter.list_payment_intents.await_args.kwargs
        assert kwargs["created_gte"] == int((now - timedelta(days=7)).timestamp())
        assert kwargs["created_lte"] is None

    async def test_subscription_errors_are_wrapped(self):
        with patch(ADAPTER) as adapter:
            adapter.list_subscriptions = AsyncMock(side_effect=stripe.APIError("down"))
            with pytest.raises(UpstreamFetchError):
                await StripeDataFetcher().fetch_subscriptions("acct_123")
