"""Celery tasks for LiveEdge.

This module configures Celery and registers the periodic scan and
settlement cycles.
"""

from celery import Celery
from celery.signals import worker_process_init

from app.config import get_settings
from app.config.logging import configure_logging

settings = get_settings()

# Create Celery application
celery_app = Celery(
    "liveedge",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.scan",
        "app.tasks.settlement",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=300,  # 5 minute hard limit
    task_soft_time_limit=240,
    # Result expiration
    result_expires=3600,  # 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Scan cycle - every minute
    "scan-live-matches": {
        "task": "app.tasks.scan.scan_live_matches_task",
        "schedule": 60.0,
        "options": {"expires": 55},  # Expire before next run
    },
    # Settlement - every 5 minutes
    "settle-pending-picks": {
        "task": "app.tasks.settlement.settle_pending_picks_task",
        "schedule": 300.0,
        "options": {"expires": 280},
    },
}


@worker_process_init.connect
def _configure_worker_logging(**kwargs):
    configure_logging(settings.log_level)
