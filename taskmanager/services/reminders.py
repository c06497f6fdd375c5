# ------------------------------------------
# Scheduled maintenance jobs
# - send_due_task_reminders() : one email per task and due date
# - purge_expired_tokens()    : removes lapsed verification/reset rows
# Called from the Celery beat schedule in taskmanager.worker
# ------------------------------------------

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from taskmanager.core.clock import utcnow
from taskmanager.core.config import settings
from taskmanager.core.email import EmailDeliveryError, Mailer, render_email
from taskmanager.models import EmailVerificationToken, PasswordResetToken, Task, TaskStatus

logger = logging.getLogger(__name__)


def send_due_task_reminders(db: Session, mailer: Mailer, now: Optional[datetime] = None) -> int:
    """
    Email the owner of every unfinished task due within the reminder window
    (overdue ones included) that has not been reminded for its current due
    date. Returns the number of reminders sent.
    """
    now = now or utcnow()
    window_end = now + timedelta(hours=settings.REMINDER_WINDOW_HOURS)
    statement = (
        select(Task)
        .where(
            Task.status != TaskStatus.COMPLETED.value,
            Task.due_date <= window_end,
            Task.reminder_sent_at.is_(None),
        )
        .options(selectinload(Task.owner))
        .order_by(Task.due_date)
    )

    sent = 0
    for task in db.exec(statement).all():
        if not task.owner:
            continue
        try:
            mailer.send(
                task.owner.email,
                f"Reminder: {task.title} is due soon",
                render_email(
                    "task_reminder.html",
                    name=task.owner.name,
                    title=task.title,
                    due_date=task.due_date,
                ),
            )
        except EmailDeliveryError as e:
            # Marker stays unset so the next run retries
            logger.warning(f"Reminder for task {task.id} not sent: {e}")
            continue

        task.reminder_sent_at = now
        db.add(task)
        db.commit()
        sent += 1

    logger.info(f"Reminder job finished: {sent} reminder(s) sent")
    return sent


def purge_expired_tokens(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    purged = 0
    for model in (EmailVerificationToken, PasswordResetToken):
        for record in db.exec(select(model).where(model.expires_at < now)).all():
            db.delete(record)
            purged += 1
    db.commit()
    if purged:
        logger.info(f"Purged {purged} expired token(s)")
    return purged
