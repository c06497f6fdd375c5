from datetime import datetime, timedelta, timezone

from sqlmodel import select

from taskmanager.core.clock import utcnow
from taskmanager.core.security import get_password_hash
from taskmanager.models import EmailVerificationToken, PasswordResetToken, Task, TaskStatus, User
from taskmanager.services.reminders import purge_expired_tokens, send_due_task_reminders

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


def add_user(db, email="owner@example.com"):
    user = User(name="Owner", email=email, phone="+15550001111", password=get_password_hash("password123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_task(db, user, title, due, status=TaskStatus.PENDING):
    task = Task(user_id=user.id, title=title, category="Work", priority="high", status=status.value, due_date=due)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def test_reminds_each_due_task_once(db, mailer):
    user = add_user(db)
    soon = add_task(db, user, "Soon", NOW + timedelta(hours=3))
    overdue = add_task(db, user, "Overdue", NOW - timedelta(hours=1))
    add_task(db, user, "Later", NOW + timedelta(days=3))
    add_task(db, user, "Done", NOW + timedelta(hours=1), status=TaskStatus.COMPLETED)

    assert send_due_task_reminders(db, mailer, now=NOW) == 2
    subjects = sorted(m["subject"] for m in mailer.sent)
    assert subjects == ["Reminder: Overdue is due soon", "Reminder: Soon is due soon"]
    assert all(m["to"] == "owner@example.com" for m in mailer.sent)

    db.refresh(soon)
    db.refresh(overdue)
    assert soon.reminder_sent_at == NOW
    assert overdue.reminder_sent_at == NOW

    # Second run in the same window sends nothing new
    assert send_due_task_reminders(db, mailer, now=NOW + timedelta(minutes=30)) == 0
    assert len(mailer.sent) == 2


def test_moved_due_date_is_reminded_again(db, mailer):
    user = add_user(db)
    task = add_task(db, user, "Soon", NOW + timedelta(hours=3))
    send_due_task_reminders(db, mailer, now=NOW)

    task.due_date = NOW + timedelta(hours=5)
    task.reminder_sent_at = None
    db.add(task)
    db.commit()

    assert send_due_task_reminders(db, mailer, now=NOW) == 1


def test_failed_send_is_retried_next_run(db, mailer):
    user = add_user(db)
    task = add_task(db, user, "Soon", NOW + timedelta(hours=3))

    mailer.fail = True
    assert send_due_task_reminders(db, mailer, now=NOW) == 0
    db.refresh(task)
    assert task.reminder_sent_at is None

    mailer.fail = False
    assert send_due_task_reminders(db, mailer, now=NOW) == 1


def test_purge_expired_tokens(db):
    user = add_user(db)
    now = utcnow()
    db.add(EmailVerificationToken(token="a" * 64, user_id=user.id, expires_at=now - timedelta(hours=1)))
    db.add(EmailVerificationToken(token="b" * 64, user_id=user.id, expires_at=now + timedelta(hours=1)))
    db.add(PasswordResetToken(token="c" * 64, user_id=user.id, expires_at=now - timedelta(minutes=5)))
    db.commit()

    assert purge_expired_tokens(db, now=now) == 2
    remaining = db.exec(select(EmailVerificationToken)).all()
    assert [t.token for t in remaining] == ["b" * 64]
    assert db.exec(select(PasswordResetToken)).all() == []
