"""
Tests for the Stripe Connect onboarding routes: authorize, callback and disconnect.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from stripe.oauth_error import OAuthError

from app.api.core.config import settings
from app.api.core.dependencies.auth import get_current_user
from app.api.core.dependencies.redis_service import issue_oauth_state
from app.api.modules.v1.stripe_connect.schemas.cache import UserInvalidationResult
from app.api.modules.v1.stripe_connect.service.cache_invalidation import (
    CacheInvalidationService,
    get_cache_invalidation_service,
)
from app.api.modules.v1.stripe_connect.stripe import stripe_adapter
from app.api.modules.v1.users.service.user_directory import UserDirectory, get_user_directory
from main import app

CALLBACK = "/api/v1/stripe/connect/callback"


@pytest.fixture
def invalidation():
    mock = AsyncMock(spec=CacheInvalidationService)
    mock.invalidate_for_user.return_value = UserInvalidationResult(charges=1, summary=1)
    return mock


@pytest.fixture
def directory(session_factory, invalidation):
    users = UserDirectory(session_factory)
    app.dependency_overrides[get_user_directory] = lambda: users
    app.dependency_overrides[get_cache_invalidation_service] = lambda: invalidation
    return users


@pytest.mark.asyncio
class TestAuthorize:
    async def test_returns_url_with_stored_state(self, client, make_user, mock_redis):
        user = await make_user()
        app.dependency_overrides[get_current_user] = lambda: user

        response = await client.get("/api/v1/stripe/connect/authorize")

        assert response.status_code == status.HTTP_200_OK, response.text
        url = response.json()["data"]["url"]
        assert url.startswith("https://connect.stripe.com/oauth/authorize")
        [key] = mock_redis.store
        state = key.split(":", 1)[1]
        assert f"state={state}" in url
        assert mock_redis.store[key] == str(user.id)

    async def test_requires_authentication(self, client):
        response = await client.get("/api/v1/stripe/connect/authorize")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
class TestCallback:
    async def test_binds_account_and_redirects(
        self, client, make_user, directory, invalidation, mock_redis
    ):
        user = await make_user()
        state = await issue_oauth_state(str(user.id))

        with patch.object(
            stripe_adapter,
            "exchange_connect_code",
            AsyncMock(return_value={"stripe_user_id": "acct_new"}),
        ) as exchange:
            response = await client.get(CALLBACK, params={"state": state, "code": "ac_123"})

        assert response.status_code == status.HTTP_303_SEE_OTHER, response.text
        assert response.headers["location"] == settings.STRIPE_CONNECT_RETURN_URL
        exchange.assert_awaited_once_with("ac_123")
        assert (await directory.get(user.id)).stripe_account_id == "acct_new"
        invalidation.invalidate_for_user.assert_awaited_once_with(
            user.id, reason="Stripe account connected"
        )
        assert mock_redis.store == {}

    async def test_state_cannot_be_replayed(self, client, make_user, directory):
        user = await make_user()
        state = await issue_oauth_state(str(user.id))

        with patch.object(
            stripe_adapter,
            "exchange_connect_code",
            AsyncMock(return_value={"stripe_user_id": "acct_new"}),
        ):
            first = await client.get(CALLBACK, params={"state": state, "code": "ac_123"})
            second = await client.get(CALLBACK, params={"state": state, "code": "ac_123"})

        assert first.status_code == status.HTTP_303_SEE_OTHER
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert second.json()["error"] == "OAUTH_STATE_INVALID"

    async def test_unknown_state_is_rejected(self, client, directory, invalidation):
        response = await client.get(CALLBACK, params={"state": "forged", "code": "ac_123"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "OAUTH_STATE_INVALID"
        invalidation.invalidate_for_user.assert_not_awaited()

    async def test_declined_authorization(self, client, make_user, directory, mock_redis):
        user = await make_user()
        state = await issue_oauth_state(str(user.id))

        response = await client.get(
            CALLBACK,
            params={
                "state": state,
                "error": "access_denied",
                "error_description": "The user denied your request",
            },
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "STRIPE_CONNECT_DECLINED"
        assert body["message"] == "The user denied your request"
        assert mock_redis.store == {}
        assert (await directory.get(user.id)).stripe_account_id is None

    async def test_failed_code_exchange_is_502(self, client, make_user, directory):
        user = await make_user()
        state = await issue_oauth_state(str(user.id))

        with patch.object(
            stripe_adapter,
            "exchange_connect_code",
            AsyncMock(side_effect=OAuthError("invalid_grant", "Authorization code expired")),
        ):
            response = await client.get(CALLBACK, params={"state": state, "code": "ac_old"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error"] == "UPSTREAM_FETCH_FAILED"
        assert (await directory.get(user.id)).stripe_account_id is None


@pytest.mark.asyncio
class TestDisconnect:
    async def test_unbinds_and_invalidates(self, client, make_user, directory, invalidation):
        user = await make_user("acct_123")
        app.dependency_overrides[get_current_user] = lambda: user

        with patch.object(
            stripe_adapter,
            "deauthorize_connect_account",
            AsyncMock(side_effect=OAuthError("invalid_client", "Already revoked")),
        ) as deauthorize:
            response = await client.post("/api/v1/stripe/connect/disconnect")

        assert response.status_code == status.HTTP_200_OK, response.text
        body = response.json()
        assert body["data"]["stripe_account_id"] == "acct_123"
        assert body["data"]["invalidated"] == {"charges": 1, "subscriptions": 0, "summary": 1}
        deauthorize.assert_awaited_once_with("acct_123")
        assert (await directory.get(user.id)).stripe_account_id is None
        invalidation.invalidate_for_user.assert_awaited_once_with(
            user.id, reason="Stripe account disconnected"
        )

    async def test_without_account_is_409(self, client, make_user, directory, invalidation):
        user = await make_user()
        app.dependency_overrides[get_current_user] = lambda: user

        response = await client.post("/api/v1/stripe/connect/disconnect")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "STRIPE_ACCOUNT_NOT_CONNECTED"
        invalidation.invalidate_for_user.assert_not_awaited()
