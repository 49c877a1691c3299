"""
Celery Application Configuration
"""
from celery import Celery
from skateguide.config import settings

# Create Celery app
celery_app = Celery(
    "skateguide_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "skateguide.worker.tasks"
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,
    task_soft_time_limit=270,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    result_expires=3600,
)

# Periodic consistency jobs
celery_app.conf.beat_schedule = {
    "reconcile-favorites-counts": {
        "task": "skateguide.worker.tasks.reconcile_favorites_counts",
        "schedule": settings.FAVORITES_RECONCILE_INTERVAL_SEC,
    },
    "recalculate-ratings": {
        "task": "skateguide.worker.tasks.recalculate_ratings",
        "schedule": settings.FAVORITES_RECONCILE_INTERVAL_SEC * 24,
    },
}
