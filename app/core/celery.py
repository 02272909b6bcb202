"""
Celery configuration for background tasks
"""
from celery import Celery
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

# Create Celery instance
celery_app = Celery(
    "pos_turnos",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.modules.configuration.tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.BUSINESS_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend settings
    result_expires=3600,  # 1 hour

    task_routes={
        "app.modules.configuration.tasks.*": {"queue": "rates"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "refresh-exchange-rate": {
            "task": "app.modules.configuration.tasks.refresh_exchange_rate",
            "schedule": 1800.0,  # Every 30 minutes; the task skips fresh rates
        },
    }
)

if __name__ == "__main__":
    celery_app.start()
