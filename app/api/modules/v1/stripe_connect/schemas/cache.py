from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.api.modules.v1.stripe_connect.models import ALLOWED_RANGE_DAYS


class InvalidateCacheRequest(BaseModel):
    """Selective cache busting; no variant selected means all variants."""

    charges: bool = False
    subscriptions: bool = False
    summary: bool = False
    range_days: Optional[int] = Field(default=None)

    @field_validator("range_days")
    @classmethod
    def validate_range_days(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in ALLOWED_RANGE_DAYS:
            raise ValueError(f"range_days must be one of {list(ALLOWED_RANGE_DAYS)}")
        return value

    @property
    def selects_any(self) -> bool:
        return self.charges or self.subscriptions or self.summary


class UserInvalidationResult(BaseModel):
    charges: int = 0
    subscriptions: int = 0
    summary: int = 0

    @property
    def total(self) -> int:
        return self.charges + self.subscriptions + self.summary


class AccountInvalidationResult(BaseModel):
    users_affected: int = 0
    total_deleted: int = 0


class CachedPayloadResponse(BaseModel):
    """Payload as served to API consumers together with its freshness."""

    variant: str
    data: Any
    cached_at: datetime
    from_cache: bool
    used_source: Optional[str] = None
