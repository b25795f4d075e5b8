from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse


def success_response(status_code: int, message: str, data: Optional[Any] = None):
    """
    Envelope for successful API calls.

    ``data`` is run through ``jsonable_encoder``, so datetimes, UUIDs and
    pydantic models can be passed as is. A missing payload is sent as ``{}``.

    Example body::

        {"status": "SUCCESS", "status_code": 200, "message": "...", "data": {...}}
    """
    response_data = {
        "status": "SUCCESS",
        "status_code": status_code,
        "message": message,
        "data": data if data is not None else {},
    }

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response_data))


def error_response(
    *,
    status_code: int,
    message: str,
    error: str = "ERROR",
    errors: Optional[Dict[str, List[str]]] = None,
) -> JSONResponse:
    """
    Envelope for failed API calls.

    Args:
        status_code: HTTP status, echoed in the body.
        message: Human-readable description.
        error: Machine-readable code such as ``STRIPE_ACCOUNT_NOT_CONNECTED``.
        errors: Field-level messages keyed by field name, e.g. ``{"range_days": [...]}``.
    """
    response_data = {
        "error": error,
        "message": message,
        "status_code": status_code,
        "errors": errors or {},
    }

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response_data))


def webhook_text_response(status_code: int, text: str) -> PlainTextResponse:
    """Plain-text body for webhook senders, which only look at the status code."""
    return PlainTextResponse(text, status_code=status_code)
