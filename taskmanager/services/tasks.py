"""
Task Ownership & Sharing Engine

A task is visible to its owner and to every user in its shared_with set.
Only the owner may edit, delete, share or unshare it; shared users may read it
and change its status.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from taskmanager.core.clock import utcnow
from taskmanager.core.errors import Conflict, Forbidden, InvalidArgument, NotFound, Unauthenticated
from taskmanager.core.security import Principal
from taskmanager.db.transaction import atomic
from taskmanager.models import Task, TaskCategory, TaskShare, TaskStatus, User
from taskmanager.schemas.task import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
NOT_AUTHORIZED = "Not authorized to access this task"
SELF_SHARE_ERROR = "Cannot share task with yourself"
TASK_ALREADY_SHARED = "Task is already shared with this user"
TASK_NOT_SHARED = "Task is not shared with this user"
INVALID_STATUS = "Invalid status"
ACCOUNT_GONE = "Account no longer exists"


def _visible_to(user_id: str):
    shared_ids = select(TaskShare.task_id).where(TaskShare.user_id == user_id)
    return or_(Task.user_id == user_id, Task.id.in_(shared_ids))


def _with_people(statement):
    return statement.options(selectinload(Task.owner), selectinload(Task.shared_with))


def list_tasks(db: Session, principal: Principal) -> List[Task]:
    """All tasks the caller owns or has been shared, newest first."""
    statement = _with_people(
        select(Task)
        .where(_visible_to(principal.id))
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return db.exec(statement).all()


def list_tasks_by_category(db: Session, principal: Principal, category: str) -> List[Task]:
    """Visible tasks in one category, soonest due first."""
    if category not in [c.value for c in TaskCategory]:
        raise InvalidArgument("Invalid category")
    statement = _with_people(
        select(Task)
        .where(_visible_to(principal.id), Task.category == category)
        .order_by(Task.due_date.asc(), Task.id.asc())
    )
    return db.exec(statement).all()


def _load(db: Session, task_id: int) -> Task:
    task = db.exec(_with_people(select(Task).where(Task.id == task_id))).first()
    if not task:
        raise NotFound(TASK_NOT_FOUND)
    return task


def _load_owned(db: Session, principal: Principal, task_id: int) -> Task:
    task = _load(db, task_id)
    if not task.is_owned_by(principal.id):
        raise Forbidden(NOT_AUTHORIZED)
    return task


def get_task(db: Session, principal: Principal, task_id: int) -> Task:
    task = _load(db, task_id)
    if not task.is_visible_to(principal.id):
        raise Forbidden(NOT_AUTHORIZED)
    return task


def _resolve_share_targets(db: Session, owner_id: str, user_ids: Iterable[str]) -> List[User]:
    """Validate a full shared_with set: no self, no unknown users, no duplicates."""
    unique_ids = list(dict.fromkeys(user_ids))
    if owner_id in unique_ids:
        raise InvalidArgument(SELF_SHARE_ERROR)
    if not unique_ids:
        return []
    users = db.exec(select(User).where(User.id.in_(unique_ids))).all()
    if len(users) != len(unique_ids):
        raise NotFound("User to share with not found")
    by_id = {user.id: user for user in users}
    return [by_id[user_id] for user_id in unique_ids]


def create_task(db: Session, principal: Principal, data: TaskCreate) -> Task:
    # Tokens outlive deleted accounts; never create a task without an owner row
    if not db.get(User, principal.id):
        raise Unauthenticated(ACCOUNT_GONE)
    shared_users = _resolve_share_targets(db, principal.id, data.shared_with)
    with atomic(db):
        task = Task(
            user_id=principal.id,
            title=data.title,
            description=data.description,
            category=data.category.value,
            priority=data.priority.value,
            status=data.status.value,
            due_date=data.due_date,
        )
        task.shared_with = shared_users
        db.add(task)
    return _load(db, task.id)


def update_task(db: Session, principal: Principal, task_id: int, data: TaskUpdate, now: Optional[datetime] = None) -> Task:
    """
    Owner-only partial update. Ownership cannot be transferred; a new
    shared_with list replaces the old one after the same checks as sharing.
    Moving the due date re-arms the due-soon reminder.
    """
    task = _load_owned(db, principal, task_id)
    patch = data.model_dump(exclude_unset=True)

    with atomic(db):
        if "shared_with" in patch:
            task.shared_with = _resolve_share_targets(db, principal.id, patch.pop("shared_with") or [])

        for key, value in patch.items():
            if value is None:
                continue
            if key == "due_date" and value != task.due_date:
                task.reminder_sent_at = None
            setattr(task, key, value.value if hasattr(value, "value") else value)

        task.updated_at = now or utcnow()
        db.add(task)
    return _load(db, task_id)


def update_task_status(db: Session, principal: Principal, task_id: int, status: Optional[str], now: Optional[datetime] = None) -> Task:
    if not status:
        raise InvalidArgument("Status is required")
    if status not in [s.value for s in TaskStatus]:
        raise InvalidArgument(INVALID_STATUS)

    task = get_task(db, principal, task_id)
    with atomic(db):
        task.status = status
        task.updated_at = now or utcnow()
        db.add(task)
    return _load(db, task_id)


def delete_task(db: Session, principal: Principal, task_id: int) -> None:
    task = _load_owned(db, principal, task_id)
    with atomic(db):
        db.delete(task)
    logger.info(f"Task {task_id} deleted by {principal.id}")


def share_task(db: Session, principal: Principal, task_id: int, target_user_id: Optional[str]) -> Task:
    """
    Add one user to the task's shared_with set.

    Raises:
        NotFound: Unknown task or target user
        Forbidden: Caller does not own the task
        InvalidArgument: Missing target, or the owner sharing with themselves
        Conflict: Target already in shared_with
    """
    if not target_user_id:
        raise InvalidArgument("User to share with is required")
    task = _load_owned(db, principal, task_id)
    if target_user_id == principal.id:
        raise InvalidArgument(SELF_SHARE_ERROR)

    target = db.get(User, target_user_id)
    if not target:
        raise NotFound("User to share with not found")
    if task.is_shared_with(target_user_id):
        raise Conflict(TASK_ALREADY_SHARED)

    with atomic(db, conflict_message=TASK_ALREADY_SHARED):
        task.shared_with.append(target)
        task.updated_at = utcnow()
        db.add(task)
    return _load(db, task_id)


def unshare_task(db: Session, principal: Principal, task_id: int, target_user_id: Optional[str]) -> Task:
    if not target_user_id:
        raise InvalidArgument("User to unshare is required")
    task = _load_owned(db, principal, task_id)
    if not task.is_shared_with(target_user_id):
        raise NotFound(TASK_NOT_SHARED)

    with atomic(db):
        task.shared_with = [user for user in task.shared_with if user.id != target_user_id]
        task.updated_at = utcnow()
        db.add(task)
    return _load(db, task_id)
