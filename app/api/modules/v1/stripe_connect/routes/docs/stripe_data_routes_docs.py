# Stripe data (read-through cache) route documentation

_not_connected = {
    "summary": "No Stripe account connected",
    "value": {
        "error": "STRIPE_ACCOUNT_NOT_CONNECTED",
        "message": "No Stripe account is connected for this user",
        "status_code": 409,
        "errors": {},
    },
}

_upstream_failed = {
    "summary": "Stripe unreachable",
    "value": {
        "error": "UPSTREAM_FETCH_FAILED",
        "message": "Could not fetch payments for Stripe account acct_123",
        "status_code": 502,
        "errors": {},
    },
}

_cache_write_failed = {
    "summary": "Cache write failed",
    "value": {
        "error": "CACHE_WRITE_FAILED",
        "message": "Failed to store charges cache for user 3f7be7d0-5c7f-4a52-9f87-7fd970000001",
        "status_code": 503,
        "errors": {},
    },
}


def _read_errors():
    return {
        409: {
            "description": "Conflict - no connected Stripe account",
            "content": {"application/json": {"examples": {"not_connected": _not_connected}}},
        },
        502: {
            "description": "Bad Gateway - Stripe request failed",
            "content": {"application/json": {"examples": {"upstream": _upstream_failed}}},
        },
        503: {
            "description": "Service Unavailable - cache write failed",
            "content": {"application/json": {"examples": {"cache_write": _cache_write_failed}}},
        },
    }


get_charges_responses = {
    200: {
        "description": "Recent payments",
        "content": {
            "application/json": {
                "example": {
                    "status": "SUCCESS",
                    "status_code": 200,
                    "message": "Charges retrieved",
                    "data": {
                        "variant": "charges",
                        "from_cache": True,
                        "cached_at": "2025-01-01T12:00:00+00:00",
                        "used_source": "payment_intents",
                        "data": [
                            {
                                "id": "pi_123",
                                "source": "payment_intent",
                                "amount": 2500,
                                "currency": "usd",
                                "created": 1735732800,
                                "status": "requires_payment_method",
                                "paid": False,
                                "customer": "jane@example.com",
                                "failure_code": "insufficient_funds",
                                "failure_message": "Your card has insufficient funds.",
                            }
                        ],
                    },
                }
            }
        },
    },
    **_read_errors(),
}

get_subscriptions_responses = {
    200: {
        "description": "Subscriptions of the connected account",
        "content": {
            "application/json": {
                "example": {
                    "status": "SUCCESS",
                    "status_code": 200,
                    "message": "Subscriptions retrieved",
                    "data": {
                        "variant": "subscriptions",
                        "from_cache": False,
                        "cached_at": "2025-01-01T12:00:00+00:00",
                        "used_source": None,
                        "data": [
                            {
                                "id": "sub_123",
                                "status": "active",
                                "customer": "cus_123",
                                "created": 1735732800,
                                "current_period_end": 1738411200,
                                "cancel_at_period_end": False,
                                "amount": 4900,
                                "currency": "usd",
                                "interval": "month",
                                "quantity": 1,
                            }
                        ],
                    },
                }
            }
        },
    },
    **_read_errors(),
}

get_summary_responses = {
    200: {
        "description": "Payment summary for the window",
        "content": {
            "application/json": {
                "example": {
                    "status": "SUCCESS",
                    "status_code": 200,
                    "message": "Summary retrieved",
                    "data": {
                        "variant": "summary",
                        "from_cache": True,
                        "cached_at": "2025-01-01T12:00:00+00:00",
                        "used_source": None,
                        "data": {
                            "total_volume": 125000,
                            "currency": "usd",
                            "total_count": 58,
                            "failed_count": 3,
                        },
                    },
                }
            }
        },
    },
    **_read_errors(),
}

invalidate_cache_responses = {
    200: {
        "description": "Cache entries deleted",
        "content": {
            "application/json": {
                "example": {
                    "status": "SUCCESS",
                    "status_code": 200,
                    "message": "Stripe cache invalidated",
                    "data": {"charges": 2, "subscriptions": 1, "summary": 3},
                }
            }
        },
    },
    500: {"description": "Cache invalidation failed"},
}

invalidate_account_cache_responses = {
    200: {
        "description": "Caches of every user bound to the account deleted",
        "content": {
            "application/json": {
                "example": {
                    "status": "SUCCESS",
                    "status_code": 200,
                    "message": "Stripe cache invalidated for account",
                    "data": {"users_affected": 2, "total_deleted": 7},
                }
            }
        },
    },
    403: {"description": "Admin privileges required"},
    500: {"description": "Cache invalidation failed"},
}
