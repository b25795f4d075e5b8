from fastapi import APIRouter

from app.api.modules.v1.stripe_connect.routes import stripe_connect_router

router = APIRouter(prefix="/v1")
router.include_router(stripe_connect_router)
