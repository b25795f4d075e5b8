import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

JSONType = JSON().with_variant(JSONB(), "postgresql")


class WebhookEventStatus(str, Enum):
    """Processing state of a stored webhook event."""

    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


class WebhookEvent(SQLModel, table=True):
    """
    Append-only log of Stripe webhook deliveries.

    One row per Stripe event id; only ``status`` changes after insert.
    """

    __tablename__ = "webhook_events"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4, primary_key=True, index=True, nullable=False
    )

    event_id: str = Field(
        max_length=255,
        nullable=False,
        unique=True,
        index=True,
        description="Unique Stripe event ID",
    )

    type: str = Field(
        max_length=255,
        nullable=False,
        index=True,
        description="Stripe event type e.g. charge.succeeded",
    )

    account: Optional[str] = Field(
        default=None,
        max_length=255,
        index=True,
        description="Connected account the event originated from, null for platform events",
    )

    api_version: Optional[str] = Field(default=None, max_length=64)

    event_created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
        description="Creation time reported by Stripe",
    )

    livemode: bool = Field(default=False, nullable=False)

    request_id: Optional[str] = Field(default=None, max_length=255)

    related_object_id: Optional[str] = Field(
        default=None,
        max_length=255,
        index=True,
        description="data.object.id or data.object.payment_intent",
    )

    status: WebhookEventStatus = Field(
        sa_column=sa.Column(
            sa.Enum(
                WebhookEventStatus,
                name="webhookeventstatus",
                values_callable=lambda enum: [member.value for member in enum],
            ),
            nullable=False,
            index=True,
        ),
        default=WebhookEventStatus.RECEIVED,
    )

    payload: Dict[str, Any] = Field(
        sa_column=Column(JSONType, nullable=False),
        description="Full Stripe webhook JSON payload",
    )

    error_message: Optional[str] = Field(
        default=None, sa_column=Column(sa.Text, nullable=True)
    )

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
