# Webhook route documentation for Stripe Connect events
stripe_webhook_responses = {
    200: {
        "description": "Event verified and stored",
        "content": {"application/json": {"example": {"received": True}}},
    },
    400: {
        "description": "Bad Request - signature or payload rejected, nothing stored",
        "content": {
            "text/plain": {
                "examples": {
                    "invalid_signature": {
                        "summary": "Invalid webhook signature",
                        "value": "Webhook Error: Invalid webhook signature",
                    },
                    "missing_signature": {
                        "summary": "Missing Stripe-Signature header",
                        "value": "Webhook Error: Missing Stripe-Signature header",
                    },
                    "malformed_payload": {
                        "summary": "Body is not a Stripe event",
                        "value": "Webhook Error: Malformed webhook payload",
                    },
                }
            }
        },
    },
    500: {
        "description": "Internal Server Error",
        "content": {"text/plain": {"example": "Webhook handler failed"}},
    },
}
