import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError

from app.api.modules.v1.stripe_connect.errors import StripeConnectError
from app.api.utils.response_payloads import error_response

logger = logging.getLogger("app")

VALUE_ERROR_PREFIX = "Value error,"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Render request validation failures as ``VALIDATION_ERROR`` with one entry per field.

    The field name is the last element of the error location, so a body field
    ``range_days`` and a query parameter ``offset_days`` are keyed the same way.
    """
    errors = {}
    for err in exc.errors():
        field_name = str(err["loc"][-1])
        message = err["msg"]
        if message.startswith(VALUE_ERROR_PREFIX):
            message = message[len(VALUE_ERROR_PREFIX):].strip()
        errors.setdefault(field_name, []).append(message)

    logger.info("Validation failed on %s: %s", request.url.path, list(errors))
    return error_response(
        status_code=422,
        message="Validation failed",
        error="VALIDATION_ERROR",
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTPException raised by routes and dependencies; auth headers are preserved."""
    logger.error("HTTP exception: %s (%s)", exc.detail, exc.status_code)

    response = error_response(
        status_code=exc.status_code,
        error="HTTP_ERROR",
        message=exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def stripe_connect_exception_handler(request: Request, exc: StripeConnectError):
    """
    Render Stripe Connect domain errors with the status code the error class carries.
    """
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    else:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)

    return error_response(
        status_code=exc.status_code,
        error=exc.error_code,
        message=exc.message,
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s: %s", request.url.path, exc)

    return error_response(
        status_code=500,
        error="INTERNAL_SERVER_ERROR",
        message="Internal server error",
    )
