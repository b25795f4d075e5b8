from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# 9999-12-31T23:59:59Z, the last second a datetime can hold
MAX_EVENT_TIMESTAMP = 253402300799


class StripeEventRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    idempotency_key: Optional[str] = None


class StripeEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: Dict[str, Any] = Field(default_factory=dict)


class WebhookEnvelope(BaseModel):
    """The subset of a Stripe event envelope the ingestion pipeline relies on."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    created: int = Field(ge=0, le=MAX_EVENT_TIMESTAMP)
    data: StripeEventData = Field(default_factory=StripeEventData)
    livemode: bool = False
    account: Optional[str] = None
    api_version: Optional[str] = None
    # Older API versions send the request id as a bare string
    request: Optional[Union[StripeEventRequest, str]] = None

    @property
    def data_object(self) -> Dict[str, Any]:
        return self.data.object

    @property
    def request_id(self) -> Optional[str]:
        if isinstance(self.request, StripeEventRequest):
            return self.request.id
        return self.request

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created, tz=timezone.utc)


class WebhookAck(BaseModel):
    """Outcome of one ingestion, returned to the route and used in logs."""

    event_id: str
    event_type: str
    category: str
    already_recorded: bool = False
    routed: bool = False
    users_affected: int = 0
    total_deleted: int = 0
    invalidation_error: Optional[str] = None
