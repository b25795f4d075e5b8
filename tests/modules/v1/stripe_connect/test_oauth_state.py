import pytest

from app.api.core.config import settings
from app.api.core.dependencies.redis_service import (
    OAUTH_STATE_PREFIX,
    consume_oauth_state,
    issue_oauth_state,
)


@pytest.mark.asyncio
class TestOAuthState:
    async def test_issue_stores_user_with_ttl(self, mock_redis):
        state = await issue_oauth_state("user-1")

        key = f"{OAUTH_STATE_PREFIX}:{state}"
        assert mock_redis.store[key] == "user-1"
        assert await mock_redis.ttl(key) == settings.STRIPE_OAUTH_STATE_TTL

    async def test_custom_ttl(self, mock_redis):
        state = await issue_oauth_state("user-1", ttl_seconds=60)
        assert await mock_redis.ttl(f"{OAUTH_STATE_PREFIX}:{state}") == 60

    async def test_states_are_unique(self):
        assert await issue_oauth_state("user-1") != await issue_oauth_state("user-1")

    async def test_consume_is_one_time(self):
        state = await issue_oauth_state("user-1")

        assert await consume_oauth_state(state) == "user-1"
        assert await consume_oauth_state(state) is None

    async def test_unknown_and_empty_state(self, mock_redis):
        assert await consume_oauth_state("unknown") is None
        assert await consume_oauth_state("") is None
