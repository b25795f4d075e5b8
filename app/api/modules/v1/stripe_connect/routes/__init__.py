from fastapi import APIRouter

from app.api.modules.v1.stripe_connect.routes.connect_routes import router as connect
from app.api.modules.v1.stripe_connect.routes.stripe_data_routes import router as stripe_data
from app.api.modules.v1.stripe_connect.routes.webhook_route import router as webhook

stripe_connect_router = APIRouter()

stripe_connect_router.include_router(connect)
stripe_connect_router.include_router(stripe_data)
stripe_connect_router.include_router(webhook)


__all__ = [
    "connect",
    "stripe_connect_router",
    "stripe_data",
    "webhook",
]
