import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.api.modules.v1.stripe_connect.models.webhook_event import JSONType

ALLOWED_RANGE_DAYS = (7, 30, 90, 180, 365)


def _user_fk_column() -> Column:
    return Column(
        sa.Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _cached_at_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False, index=True)


class StripeChargesCache(SQLModel, table=True):
    """Normalized recent payments of a user's connected account, one row per range."""

    __tablename__ = "stripe_charges_cache"
    __table_args__ = (
        UniqueConstraint("user_id", "range_days", name="uq_stripe_charges_cache_user_range"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    user_id: uuid.UUID = Field(sa_column=_user_fk_column())
    stripe_account_id: str = Field(max_length=255, nullable=False, index=True)
    range_days: int = Field(nullable=False)
    used_source: Optional[str] = Field(default=None, max_length=32)
    charges: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSONType, nullable=False)
    )
    cached_at: datetime = Field(
        sa_column=_cached_at_column(), default_factory=lambda: datetime.now(timezone.utc)
    )


class StripeSubscriptionsCache(SQLModel, table=True):
    """Normalized subscriptions of a user's connected account, one row per user."""

    __tablename__ = "stripe_subscriptions_cache"
    __table_args__ = (UniqueConstraint("user_id", name="uq_stripe_subscriptions_cache_user"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    user_id: uuid.UUID = Field(sa_column=_user_fk_column())
    stripe_account_id: str = Field(max_length=255, nullable=False, index=True)
    subscriptions: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSONType, nullable=False)
    )
    cached_at: datetime = Field(
        sa_column=_cached_at_column(), default_factory=lambda: datetime.now(timezone.utc)
    )


class StripeSummaryCache(SQLModel, table=True):
    """Aggregated payment figures for a window ending ``offset_days`` ago."""

    __tablename__ = "stripe_summary_cache"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "range_days",
            "offset_days",
            name="uq_stripe_summary_cache_user_range_offset",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    user_id: uuid.UUID = Field(sa_column=_user_fk_column())
    stripe_account_id: str = Field(max_length=255, nullable=False, index=True)
    range_days: int = Field(nullable=False)
    offset_days: int = Field(default=0, nullable=False)
    summary: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSONType, nullable=False)
    )
    cached_at: datetime = Field(
        sa_column=_cached_at_column(), default_factory=lambda: datetime.now(timezone.utc)
    )
