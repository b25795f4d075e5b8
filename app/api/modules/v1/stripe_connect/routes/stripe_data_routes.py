import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.core.dependencies.auth import get_current_user, require_admin
from app.api.modules.v1.stripe_connect.errors import StripeAccountNotConnectedError
from app.api.modules.v1.stripe_connect.models import ALLOWED_RANGE_DAYS
from app.api.modules.v1.stripe_connect.routes.docs.stripe_data_routes_docs import (
    get_charges_responses,
    get_subscriptions_responses,
    get_summary_responses,
    invalidate_account_cache_responses,
    invalidate_cache_responses,
)
from app.api.modules.v1.stripe_connect.schemas.cache import (
    CachedPayloadResponse,
    InvalidateCacheRequest,
)
from app.api.modules.v1.stripe_connect.service.cache_invalidation import (
    CacheInvalidationService,
    get_cache_invalidation_service,
)
from app.api.modules.v1.stripe_connect.service.stripe_cache_service import (
    CachedPayload,
    StripeCacheService,
    get_stripe_cache_service,
)
from app.api.modules.v1.users.models.users_model import User
from app.api.utils.response_payloads import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["Stripe"])


def range_days_param(
    range_days: int = Query(30, description="Window length in days: 7, 30, 90, 180 or 365"),
) -> int:
    if range_days not in ALLOWED_RANGE_DAYS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"range_days must be one of {list(ALLOWED_RANGE_DAYS)}",
        )
    return range_days


def _connected_account(user: User) -> str:
    if not user.stripe_account_id:
        raise StripeAccountNotConnectedError()
    return user.stripe_account_id


def _payload_data(payload: CachedPayload) -> dict:
    return CachedPayloadResponse(
        variant=payload.variant.value,
        data=payload.data,
        cached_at=payload.cached_at,
        from_cache=payload.from_cache,
        used_source=payload.used_source,
    ).model_dump(mode="json")


@router.get(
    "/charges",
    status_code=status.HTTP_200_OK,
    summary="Recent payments of the connected Stripe account",
    responses=get_charges_responses,
)
async def get_charges(
    range_days: int = Depends(range_days_param),
    current_user: User = Depends(get_current_user),
    cache: StripeCacheService = Depends(get_stripe_cache_service),
):
    """
    Normalized payments for the last ``range_days`` days, served from cache while fresh.
    """
    account = _connected_account(current_user)
    payload = await cache.get_charges(current_user.id, account, range_days)
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Charges retrieved",
        data=_payload_data(payload),
    )


@router.get(
    "/subscriptions",
    status_code=status.HTTP_200_OK,
    summary="Subscriptions of the connected Stripe account",
    responses=get_subscriptions_responses,
)
async def get_subscriptions(
    current_user: User = Depends(get_current_user),
    cache: StripeCacheService = Depends(get_stripe_cache_service),
):
    account = _connected_account(current_user)
    payload = await cache.get_subscriptions(current_user.id, account)
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Subscriptions retrieved",
        data=_payload_data(payload),
    )


@router.get(
    "/summary",
    status_code=status.HTTP_200_OK,
    summary="Payment volume and failure counts for a window",
    responses=get_summary_responses,
)
async def get_summary(
    range_days: int = Depends(range_days_param),
    offset_days: int = Query(0, ge=0, le=365, description="Days between now and window end"),
    current_user: User = Depends(get_current_user),
    cache: StripeCacheService = Depends(get_stripe_cache_service),
):
    """
    Summary over ``[now - (offset_days + range_days), now - offset_days]``.

    An offset equal to the range yields the previous period, used for comparisons.
    """
    account = _connected_account(current_user)
    payload = await cache.get_summary(current_user.id, account, range_days, offset_days)
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Summary retrieved",
        data=_payload_data(payload),
    )


@router.post(
    "/cache/invalidate",
    status_code=status.HTTP_200_OK,
    summary="Invalidate the caller's Stripe cache",
    responses=invalidate_cache_responses,
)
async def invalidate_cache(
    payload: Optional[InvalidateCacheRequest] = None,
    current_user: User = Depends(get_current_user),
    invalidation: CacheInvalidationService = Depends(get_cache_invalidation_service),
):
    """
    Without a variant selected every cached variant is dropped; otherwise only
    the selected ones, optionally limited to ``range_days``.
    """
    payload = payload or InvalidateCacheRequest()

    if payload.selects_any:
        result = await invalidation.invalidate_specific(
            current_user.id,
            charges=payload.charges,
            subscriptions=payload.subscriptions,
            summary=payload.summary,
            range_days=payload.range_days,
        )
    else:
        result = await invalidation.invalidate_for_user(
            current_user.id, reason="Manual invalidation"
        )

    return success_response(
        status_code=status.HTTP_200_OK,
        message="Stripe cache invalidated",
        data=result.model_dump(),
    )


@router.post(
    "/cache/invalidate/accounts/{account_id}",
    status_code=status.HTTP_200_OK,
    summary="Invalidate the cache of every user bound to a Stripe account",
    responses=invalidate_account_cache_responses,
)
async def invalidate_account_cache(
    account_id: str,
    admin: User = Depends(require_admin),
    invalidation: CacheInvalidationService = Depends(get_cache_invalidation_service),
):
    result = await invalidation.invalidate_for_account(
        account_id, reason=f"Admin invalidation by {admin.id}"
    )
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Stripe cache invalidated for account",
        data=result.model_dump(),
    )
