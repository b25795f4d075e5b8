import asyncio

import nest_asyncio
from celery import shared_task

from app.api.core.logger import logger
from app.api.modules.v1.stripe_connect.service.stripe_cache_service import StripeCacheService

# Apply nest_asyncio to allow nested event loops in Celery
nest_asyncio.apply()


def run_async_in_celery(coro):
    """
    Safely run async coroutine in Celery task.
    Handles both cases: with and without existing event loop.
    """
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            return loop.run_until_complete(coro)
        else:
            return asyncio.run(coro)
    except RuntimeError:
        return asyncio.run(coro)


@shared_task(name="stripe_connect.tasks.purge_expired_stripe_cache")
def purge_expired_stripe_cache():
    """
    Delete cache rows older than the TTL from all Stripe cache tables.
    Runs every STRIPE_CACHE_REAPER_MINUTES.
    """
    return run_async_in_celery(_purge_expired_async())


async def _purge_expired_async():
    logger.info("Running Stripe cache reaper")
    deleted = await StripeCacheService().purge_expired()
    logger.info(
        "Stripe cache reaper finished: %d charges, %d subscriptions, %d summary rows",
        deleted.get("charges", 0),
        deleted.get("subscriptions", 0),
        deleted.get("summary", 0),
    )
    return deleted
