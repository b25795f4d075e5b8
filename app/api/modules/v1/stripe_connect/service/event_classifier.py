from enum import Enum


class EventCategory(str, Enum):
    TRANSACTIONAL = "transactional"
    SUBSCRIPTION = "subscription"
    UNCLASSIFIED = "unclassified"

    @property
    def invalidates_account(self) -> bool:
        return self is not EventCategory.UNCLASSIFIED


TRANSACTIONAL_EVENTS = frozenset(
    {
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
    }
)

SUBSCRIPTION_EVENTS = frozenset(
    {
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "customer.subscription.trial_will_end",
        "invoice.payment_succeeded",
        "invoice.payment_failed",
    }
)


def classify_event_type(event_type: str) -> EventCategory:
    """Map a Stripe event type onto the category that decides cache invalidation."""
    if event_type in TRANSACTIONAL_EVENTS:
        return EventCategory.TRANSACTIONAL
    if event_type in SUBSCRIPTION_EVENTS:
        return EventCategory.SUBSCRIPTION
    return EventCategory.UNCLASSIFIED
