import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from app.api.core.config import settings
from app.api.core.dependencies.auth import get_current_user
from app.api.core.dependencies.redis_service import consume_oauth_state, issue_oauth_state
from app.api.modules.v1.stripe_connect.errors import OAuthStateError, UpstreamFetchError
from app.api.modules.v1.stripe_connect.service.cache_invalidation import (
    CacheInvalidationService,
    get_cache_invalidation_service,
)
from app.api.modules.v1.stripe_connect.stripe import stripe_adapter
from app.api.modules.v1.users.models.users_model import User
from app.api.modules.v1.users.service.user_directory import UserDirectory, get_user_directory
from app.api.utils.response_payloads import error_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe/connect", tags=["Stripe Connect"])


@router.get(
    "/authorize",
    status_code=status.HTTP_200_OK,
    summary="Start Stripe Connect onboarding",
)
async def authorize(current_user: User = Depends(get_current_user)):
    """
    Issue a one-time ``state`` token and return the Stripe OAuth URL to redirect to.
    """
    state = await issue_oauth_state(str(current_user.id))
    url = stripe_adapter.build_connect_authorize_url(state)
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Stripe Connect authorization URL created",
        data={"url": url},
    )


@router.get(
    "/callback",
    summary="Stripe Connect OAuth callback",
    responses={303: {"description": "Account bound, redirect to the dashboard"}},
)
async def callback(
    state: str = Query(...),
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    users: UserDirectory = Depends(get_user_directory),
    invalidation: CacheInvalidationService = Depends(get_cache_invalidation_service),
):
    """
    Complete onboarding: consume the state, exchange the code, bind the account.

    The state is consumed before anything else, so a replayed callback fails.
    """
    user_id = await consume_oauth_state(state)
    if user_id is None:
        raise OAuthStateError()

    if error or not code:
        logger.warning("Stripe Connect declined for user %s: %s", user_id, error_description or error)
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="STRIPE_CONNECT_DECLINED",
            message=error_description or "Stripe Connect authorization was not completed",
        )

    try:
        token = await stripe_adapter.exchange_connect_code(code)
    except Exception as exc:
        logger.error("Stripe Connect code exchange failed for user %s: %s", user_id, str(exc))
        raise UpstreamFetchError("Could not complete Stripe Connect authorization") from exc

    account_id = token.get("stripe_user_id")
    if not account_id:
        raise UpstreamFetchError("Stripe did not return a connected account id")

    user = await users.bind_stripe_account(UUID(user_id), account_id)
    if user is None:
        raise OAuthStateError("User for this Stripe Connect state no longer exists")

    await invalidation.invalidate_for_user(user.id, reason="Stripe account connected")
    return RedirectResponse(
        url=settings.STRIPE_CONNECT_RETURN_URL, status_code=status.HTTP_303_SEE_OTHER
    )


@router.post(
    "/disconnect",
    status_code=status.HTTP_200_OK,
    summary="Disconnect the Stripe account",
)
async def disconnect(
    current_user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
    invalidation: CacheInvalidationService = Depends(get_cache_invalidation_service),
):
    account_id = current_user.stripe_account_id
    if not account_id:
        return error_response(
            status_code=status.HTTP_409_CONFLICT,
            error="STRIPE_ACCOUNT_NOT_CONNECTED",
            message="No Stripe account is connected for this user",
        )

    try:
        await stripe_adapter.deauthorize_connect_account(account_id)
    except Exception as exc:
        # Access may already be revoked on Stripe's side
        logger.warning("Stripe deauthorize failed for %s: %s", account_id, str(exc))

    await users.bind_stripe_account(current_user.id, None)
    result = await invalidation.invalidate_for_user(
        current_user.id, reason="Stripe account disconnected"
    )
    return success_response(
        status_code=status.HTTP_200_OK,
        message="Stripe account disconnected",
        data={"stripe_account_id": account_id, "invalidated": result.model_dump()},
    )
