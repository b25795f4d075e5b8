from celery import Celery
from celery.schedules import crontab

from app.api.core.config import settings

celery_app = Celery(
    "rackz",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.api.modules.v1.stripe_connect.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_max_tasks_per_child=100,
    broker_connection_retry_on_startup=True,
)


celery_app.conf.beat_schedule = {
    "purge-expired-stripe-cache": {
        "task": "stripe_connect.tasks.purge_expired_stripe_cache",
        "schedule": crontab(minute=f"*/{settings.STRIPE_CACHE_REAPER_MINUTES}"),
    },
}
