from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class PaymentSource(str, Enum):
    """Stripe object a normalized payment was built from."""

    PAYMENT_INTENT = "payment_intent"
    CHARGE = "charge"


class NormalizedPayment(BaseModel):
    """One payment, identical in shape whether built from a PaymentIntent or a Charge."""

    id: str
    source: PaymentSource
    amount: int = 0
    currency: Optional[str] = None
    created: Optional[int] = None
    status: Optional[str] = None
    paid: bool = False
    customer: Optional[str] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None


class RecentPayments(BaseModel):
    payments: List[NormalizedPayment] = Field(default_factory=list)
    used_source: Literal["payment_intents", "charges"]


class NormalizedSubscription(BaseModel):
    id: str
    status: Optional[str] = None
    customer: Optional[str] = None
    created: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    amount: Optional[int] = None
    currency: Optional[str] = None
    interval: Optional[str] = None
    quantity: Optional[int] = None


class PaymentSummary(BaseModel):
    """Aggregates over a window of payments; amounts are in the smallest currency unit."""

    total_volume: int = 0
    currency: Optional[str] = None
    total_count: int = 0
    failed_count: int = 0
