import json
import logging
from typing import Optional

import stripe
from pydantic import ValidationError

from app.api.modules.v1.stripe_connect.errors import (
    MalformedPayloadError,
    SignatureInvalidError,
)
from app.api.modules.v1.stripe_connect.models.webhook_event import (
    WebhookEvent,
    WebhookEventStatus,
)
from app.api.modules.v1.stripe_connect.schemas.webhook import WebhookAck, WebhookEnvelope
from app.api.modules.v1.stripe_connect.service.cache_invalidation import (
    CacheInvalidationService,
)
from app.api.modules.v1.stripe_connect.service.event_classifier import classify_event_type
from app.api.modules.v1.stripe_connect.service.event_store import WebhookEventStore
from app.api.modules.v1.stripe_connect.service.extractors import field, first_available
from app.api.modules.v1.stripe_connect.stripe import stripe_adapter

logger = logging.getLogger(__name__)

RELATED_OBJECT_ID = [field("id"), field("payment_intent")]


def related_object_id(data_object: dict) -> Optional[str]:
    value = first_available(data_object, RELATED_OBJECT_ID)
    return value if isinstance(value, str) else None


class WebhookIngestionService:
    """
    Verify, store, classify and route one Stripe webhook delivery.

    Signature and parse failures reject the delivery before anything is stored.
    Invalidation failures are logged and recorded on the event, never raised.
    """

    def __init__(
        self,
        event_store: Optional[WebhookEventStore] = None,
        invalidation: Optional[CacheInvalidationService] = None,
    ):
        self.event_store = event_store or WebhookEventStore()
        self.invalidation = invalidation or CacheInvalidationService()

    def parse(
        self, raw_body: bytes, signature_header: Optional[str], secret: Optional[str]
    ) -> WebhookEnvelope:
        """
        Verify the signature (when a secret is configured) and parse the envelope.

        Raises:
            SignatureInvalidError: header missing or not matching ``raw_body``.
            MalformedPayloadError: body is not a Stripe event envelope.
        """
        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError("Webhook payload is not valid UTF-8") from exc

        if secret:
            if not signature_header:
                raise SignatureInvalidError("Missing Stripe-Signature header")
            try:
                stripe_adapter.verify_webhook_signature(payload, signature_header, secret)
            except stripe.SignatureVerificationError as exc:
                logger.warning("Webhook signature verification failed: %s", str(exc))
                raise SignatureInvalidError() from exc
        else:
            logger.warning("Webhook secret not configured, skipping signature verification")

        try:
            return WebhookEnvelope.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning("Malformed webhook payload: %s", exc.errors(include_url=False))
            raise MalformedPayloadError() from exc

    async def ingest(
        self, raw_body: bytes, signature_header: Optional[str], secret: Optional[str]
    ) -> WebhookAck:
        envelope = self.parse(raw_body, signature_header, secret)
        category = classify_event_type(envelope.type)

        recorded = await self.event_store.record(
            WebhookEvent(
                event_id=envelope.id,
                type=envelope.type,
                account=envelope.account,
                api_version=envelope.api_version,
                event_created_at=envelope.created_at,
                livemode=envelope.livemode,
                request_id=envelope.request_id,
                related_object_id=related_object_id(envelope.data_object),
                status=WebhookEventStatus.RECEIVED,
                payload=json.loads(raw_body),
            )
        )

        ack = WebhookAck(
            event_id=envelope.id,
            event_type=envelope.type,
            category=category.value,
            already_recorded=recorded.already_recorded,
        )
        log_extra = {
            "event_id": envelope.id,
            "event_type": envelope.type,
            "account": envelope.account,
        }

        if recorded.already_recorded and recorded.event.status == WebhookEventStatus.PROCESSED:
            logger.info("Event already processed", extra=log_extra)
            return ack

        if not envelope.account or not category.invalidates_account:
            logger.info("Stored webhook event without cache routing", extra=log_extra)
            await self.event_store.mark_status(envelope.id, WebhookEventStatus.PROCESSED)
            return ack

        try:
            result = await self.invalidation.invalidate_for_account(
                envelope.account, reason=f"Webhook: {envelope.type}"
            )
        except Exception as exc:
            logger.exception("Cache invalidation failed for webhook event", extra=log_extra)
            await self.event_store.mark_status(
                envelope.id, WebhookEventStatus.FAILED, error_message=str(exc)
            )
            ack.invalidation_error = str(exc)
            return ack

        await self.event_store.mark_status(envelope.id, WebhookEventStatus.PROCESSED)
        ack.routed = True
        ack.users_affected = result.users_affected
        ack.total_deleted = result.total_deleted
        logger.info(
            "Webhook event processed",
            extra={**log_extra, "users_affected": result.users_affected},
        )
        return ack


def get_webhook_ingestion_service() -> WebhookIngestionService:
    """Route dependency; overridden in tests."""
    return WebhookIngestionService()
