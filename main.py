import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api import router as api_router
from app.api.core.config import settings
from app.api.core.dependencies.redis_service import close_redis_client
from app.api.core.exceptions import (
    general_exception_handler,
    http_exception_handler,
    stripe_connect_exception_handler,
    validation_exception_handler,
)
from app.api.core.logger import setup_logging
from app.api.db.database import Base, engine
from app.api.modules.v1.stripe_connect import models as stripe_connect_models  # noqa: F401
from app.api.modules.v1.stripe_connect.errors import StripeConnectError
from app.api.modules.v1.users.models import users_model  # noqa: F401
from app.api.utils.response_payloads import error_response, success_response

setup_logging()
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables, then close Redis and the engine pool on shutdown.

    Schema changes in deployed environments go through Alembic; ``create_all``
    only fills in tables that do not exist yet.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning(
            "STRIPE_WEBHOOK_SECRET is not set; webhook signatures will NOT be verified"
        )

    try:
        yield
    finally:
        await close_redis_client()
        await engine.dispose()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Stripe Connect payment monitoring: webhooks, cached charges and summaries",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted({settings.APP_URL, settings.DEV_URL, settings.FRONTEND_URL}),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StripeConnectError, stripe_connect_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(api_router)


@app.get("/")
def read_root():
    return success_response(
        status_code=200,
        message=f"{settings.APP_NAME} API is running...",
        data={
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "webhook_signature_verification": bool(settings.STRIPE_WEBHOOK_SECRET),
        },
    )


@app.get("/health")
async def health_check():
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Health check failed: %s", str(exc))
        return error_response(
            status_code=503, error="DATABASE_UNAVAILABLE", message="Database unreachable"
        )
    return success_response(status_code=200, message="API is healthy")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.APP_PORT, reload=False)
