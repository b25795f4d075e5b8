import asyncio
import logging
import uuid
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api.db.database import get_session_factory
from app.api.modules.v1.stripe_connect.errors import CacheInvalidationError
from app.api.modules.v1.stripe_connect.models.stripe_cache import (
    StripeChargesCache,
    StripeSubscriptionsCache,
    StripeSummaryCache,
)
from app.api.modules.v1.stripe_connect.schemas.cache import (
    AccountInvalidationResult,
    UserInvalidationResult,
)
from app.api.modules.v1.users.service.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class CacheInvalidationService:
    """
    Purges cached Stripe data.

    Per-user purges run in their own session, so the fan-out over an account
    can delete for every bound user concurrently.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        user_directory: Optional[UserDirectory] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.user_directory = user_directory or UserDirectory(self.session_factory)

    async def invalidate_for_user(
        self, user_id: uuid.UUID, reason: str = "Manual invalidation"
    ) -> UserInvalidationResult:
        """
        Delete every cache row of ``user_id`` across charges, subscriptions and summary.

        Raises:
            CacheInvalidationError: if the storage layer fails.
        """
        try:
            async with self.session_factory() as session:
                charges = await session.execute(
                    delete(StripeChargesCache).where(StripeChargesCache.user_id == user_id)
                )
                subscriptions = await session.execute(
                    delete(StripeSubscriptionsCache).where(
                        StripeSubscriptionsCache.user_id == user_id
                    )
                )
                summary = await session.execute(
                    delete(StripeSummaryCache).where(StripeSummaryCache.user_id == user_id)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error invalidating cache for user %s: %s", user_id, str(exc))
            raise CacheInvalidationError(
                f"Failed to invalidate Stripe cache for user {user_id}"
            ) from exc

        result = UserInvalidationResult(
            charges=charges.rowcount or 0,
            subscriptions=subscriptions.rowcount or 0,
            summary=summary.rowcount or 0,
        )
        logger.info(
            "Invalidated Stripe cache for user %s (%s)",
            user_id,
            reason,
            extra=result.model_dump(),
        )
        return result

    async def invalidate_for_account(
        self, stripe_account_id: str, reason: str = "Webhook event"
    ) -> AccountInvalidationResult:
        """
        Purge the caches of every user bound to ``stripe_account_id``.

        All per-user purges run concurrently and are awaited together; the first
        failure fails the call. An account with no bound users is not an error.
        """
        try:
            users = await self.user_directory.find_by_stripe_account(stripe_account_id)
        except SQLAlchemyError as exc:
            logger.error("Error resolving users for %s: %s", stripe_account_id, str(exc))
            raise CacheInvalidationError(
                f"Failed to resolve users for Stripe account {stripe_account_id}"
            ) from exc

        if not users:
            logger.info("No users found for Stripe account %s", stripe_account_id)
            return AccountInvalidationResult(users_affected=0, total_deleted=0)

        results = await asyncio.gather(
            *(self.invalidate_for_user(user.id, reason) for user in users)
        )
        total_deleted = sum(r.total for r in results)

        logger.info(
            "Invalidated cache for %d user(s) with Stripe account %s: %d cache entries",
            len(users),
            stripe_account_id,
            total_deleted,
        )
        return AccountInvalidationResult(users_affected=len(users), total_deleted=total_deleted)

    async def invalidate_specific(
        self,
        user_id: uuid.UUID,
        charges: bool = False,
        subscriptions: bool = False,
        summary: bool = False,
        range_days: Optional[int] = None,
    ) -> UserInvalidationResult:
        """
        Delete only the selected variants of a user's cache.

        ``range_days`` narrows the charges and summary deletions to that range;
        subscriptions have no range. Unselected variants report 0.
        """
        result = UserInvalidationResult()
        try:
            async with self.session_factory() as session:
                if charges:
                    stmt = delete(StripeChargesCache).where(StripeChargesCache.user_id == user_id)
                    if range_days is not None:
                        stmt = stmt.where(StripeChargesCache.range_days == range_days)
                    result.charges = (await session.execute(stmt)).rowcount or 0

                if subscriptions:
                    stmt = delete(StripeSubscriptionsCache).where(
                        StripeSubscriptionsCache.user_id == user_id
                    )
                    result.subscriptions = (await session.execute(stmt)).rowcount or 0

                if summary:
                    stmt = delete(StripeSummaryCache).where(StripeSummaryCache.user_id == user_id)
                    if range_days is not None:
                        stmt = stmt.where(StripeSummaryCache.range_days == range_days)
                    result.summary = (await session.execute(stmt)).rowcount or 0

                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error invalidating specific cache for user %s: %s", user_id, str(exc))
            raise CacheInvalidationError(
                f"Failed to invalidate Stripe cache for user {user_id}"
            ) from exc

        logger.info("Invalidated selected Stripe cache for user %s", user_id, extra=result.model_dump())
        return result


def get_cache_invalidation_service() -> CacheInvalidationService:
    return CacheInvalidationService()
