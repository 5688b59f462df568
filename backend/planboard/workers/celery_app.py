"""
Celery application instance.

Configured with Redis broker and backend. Beat drives the hourly
due-date reminder sweep.
"""

from celery import Celery
from celery.schedules import crontab

from planboard.core.config import settings

celery_app = Celery(
    "planboard",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "planboard.workers.email_tasks",
        "planboard.workers.reminder_tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Results
    result_expires=3600,
    # Retry policy
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Concurrency
    worker_prefetch_multiplier=1,
    # Routing
    task_default_queue="default",
    task_queues={
        "default": {},
        "email": {},
        "reminders": {},
    },
    task_routes={
        "planboard.workers.email_tasks.*": {"queue": "email"},
        "planboard.workers.reminder_tasks.*": {"queue": "reminders"},
    },
    beat_schedule={
        "send-due-date-reminders": {
            "task": "planboard.workers.reminder_tasks.send_due_date_reminders",
            "schedule": crontab(minute=0),
        },
    },
)
