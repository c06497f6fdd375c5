"""
Background worker: due-soon task reminders and expired-token cleanup.

Run with:
    celery -A taskmanager.worker worker --beat --loglevel=info
"""
import logging

from celery import Celery
from sqlmodel import Session

from taskmanager.core.config import settings
from taskmanager.core.email import build_mailer
from taskmanager.db.session import engine
from taskmanager.services import reminders

logger = logging.getLogger(__name__)

celery = Celery("taskmanager", broker=settings.CELERY_BROKER_URL, backend=settings.CELERY_BACKEND_URL)

celery.conf.beat_schedule = {
    "send-due-task-reminders": {
        "task": "taskmanager.worker.send_due_task_reminders",
        "schedule": settings.REMINDER_INTERVAL_MINUTES * 60.0,
    },
    "purge-expired-tokens": {
        "task": "taskmanager.worker.purge_expired_tokens",
        "schedule": 3600.0,
    },
}
celery.conf.timezone = "UTC"


@celery.task(name="taskmanager.worker.send_due_task_reminders")
def send_due_task_reminders() -> int:
    with Session(engine) as db:
        return reminders.send_due_task_reminders(db, build_mailer())


@celery.task(name="taskmanager.worker.purge_expired_tokens")
def purge_expired_tokens() -> int:
    with Session(engine) as db:
        return reminders.purge_expired_tokens(db)
