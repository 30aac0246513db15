from celery import Celery
from drive_api.config import settings


celery_app = Celery(
    "drive_api",
    broker=settings.CELERY_BROKER_URL,
    include=[
        "drive_api.tasks.sweeper",
        ]
)


celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "sweep-pending-uploads": {
            "task": "drive_api.tasks.sweeper.sweep_pending_uploads",
            "schedule": float(settings.SWEEP_INTERVAL_SECONDS),
        },
    },
)
