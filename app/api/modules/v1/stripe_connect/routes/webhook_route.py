import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.api.core.config import settings
from app.api.modules.v1.stripe_connect.errors import WebhookError
from app.api.modules.v1.stripe_connect.routes.docs.webhook_route_docs import (
    stripe_webhook_responses,
)
from app.api.modules.v1.stripe_connect.service.webhook_ingestion import (
    WebhookIngestionService,
    get_webhook_ingestion_service,
)
from app.api.utils.response_payloads import webhook_text_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/stripe",
    status_code=status.HTTP_200_OK,
    summary="Stripe Connect webhook endpoint",
    responses=stripe_webhook_responses,
)
async def stripe_webhook(
    request: Request,
    ingestion: WebhookIngestionService = Depends(get_webhook_ingestion_service),
):
    """
    Stripe webhook receiver.

    The raw body is verified against the ``Stripe-Signature`` header, stored,
    and routed to cache invalidation for the originating connected account.

    Returns:
        JSONResponse: ``{"received": true}`` once the event is stored. Rejected
        deliveries get a plain-text 400, unexpected failures a plain-text 500 so
        Stripe retries them.
    """
    payload = await request.body()
    sig_header = request.headers.get("Stripe-Signature")

    try:
        ack = await ingestion.ingest(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
    except WebhookError as exc:
        return webhook_text_response(
            status.HTTP_400_BAD_REQUEST, f"Webhook Error: {exc.message}"
        )
    except Exception as exc:
        logger.exception("Error handling Stripe webhook: %s", str(exc))
        return webhook_text_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook handler failed"
        )

    logger.info(
        "Stripe webhook acknowledged",
        extra={"event_id": ack.event_id, "event_type": ack.event_type, "routed": ack.routed},
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content={"received": True})
