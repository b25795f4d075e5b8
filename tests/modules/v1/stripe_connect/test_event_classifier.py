import pytest

from app.api.modules.v1.stripe_connect.service.event_classifier import (
    EventCategory,
    classify_event_type,
)


@pytest.mark.parametrize(
    "event_type",
    [
        "payment_intent.succeeded",
        "payment_intent.payment_failed",
        "payment_intent.canceled",
        "charge.succeeded",
        "charge.failed",
        "charge.refunded",
        "charge.updated",
        "checkout.session.completed",
        "checkout.session.expired",
        "checkout.session.async_payment_succeeded",
        "checkout.session.async_payment_failed",
    ],
)
def test_transactional_events(event_type):
    assert classify_event_type(event_type) is EventCategory.TRANSACTIONAL


@pytest.mark.parametrize(
    "event_type",
    [
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "customer.subscription.trial_will_end",
        "invoice.payment_succeeded",
        "invoice.payment_failed",
    ],
)
def test_subscription_events(event_type):
    assert classify_event_type(event_type) is EventCategory.SUBSCRIPTION


@pytest.mark.parametrize(
    "event_type", ["account.updated", "payout.paid", "customer.created", "", "charge"]
)
def test_everything_else_is_unclassified(event_type):
    assert classify_event_type(event_type) is EventCategory.UNCLASSIFIED


def test_only_unclassified_skips_account_invalidation():
    assert EventCategory.TRANSACTIONAL.invalidates_account
    assert EventCategory.SUBSCRIPTION.invalidates_account
    assert not EventCategory.UNCLASSIFIED.invalidates_account
