import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True, nullable=False)

    email: str = Field(max_length=255, nullable=False, unique=True, index=True)

    hashed_password: Optional[str] = Field(default=None, max_length=255, nullable=True)

    name: str = Field(max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)

    stripe_account_id: Optional[str] = Field(
        default=None,
        max_length=255,
        index=True,
        description="Connected Stripe account (acct_...) bound to this user",
    )

    is_active: bool = Field(default=True, nullable=False)
    is_admin: bool = Field(default=False, nullable=False)

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
