"""
Task Endpoints Module

This module provides CRUD endpoints for tasks plus sharing. A task is visible
to its owner and to the users it is shared with (through the TaskShare
junction table). Only the owner may edit, delete or change sharing; shared
users may read the task and update its status.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from taskmanager.api import deps
from taskmanager.core.security import Principal
from taskmanager.db.session import get_db
from taskmanager.schemas.task import (
    CategoryTaskList, ShareRequest, ShareResult, StatusUpdate, TaskCreate, TaskDeleted, TaskList, TaskMessage,
    TaskRead, TaskUpdate,
)
from taskmanager.services import tasks as task_service

router = APIRouter()


@router.get("", response_model=TaskList)
def list_tasks(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Retrieve every task the caller owns or that has been shared with them,
    newest first. Owner and shared users are embedded as {id, name, email}.
    """
    tasks = task_service.list_tasks(db, principal)
    return TaskList(count=len(tasks), tasks=tasks)


@router.get("/category/{category}", response_model=CategoryTaskList)
def list_tasks_by_category(
    category: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """Visible tasks in one category, ordered by due date."""
    tasks = task_service.list_tasks_by_category(db, principal, category)
    return CategoryTaskList(category=category, count=len(tasks), tasks=tasks)


@router.post("", response_model=TaskMessage, status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Create a task owned by the caller.

    title, category, priority and dueDate are required; status defaults to
    pending and sharedWith to an empty list.
    """
    task = task_service.create_task(db, principal, body)
    return TaskMessage(message="Task created successfully", task=task)


@router.get("/{task_id}", response_model=TaskRead)
def read_task(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    return task_service.get_task(db, principal, task_id)


@router.put("/{task_id}", response_model=TaskMessage)
def update_task(
    task_id: int,
    body: TaskUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Update a task. Owner only; the owner itself can never be changed.

    Raises:
        NotFound 404: Task does not exist
        Forbidden 403: Caller is not the owner
    """
    task = task_service.update_task(db, principal, task_id, body)
    return TaskMessage(message="Task updated successfully", task=task)


@router.patch("/{task_id}/status", response_model=TaskMessage)
def update_task_status(
    task_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """Change only the status. Allowed for the owner and for shared users."""
    task = task_service.update_task_status(db, principal, task_id, body.status)
    return TaskMessage(message="Task status updated successfully", task=task)


@router.delete("/{task_id}", response_model=TaskDeleted)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    task_service.delete_task(db, principal, task_id)
    return TaskDeleted(message="Task deleted successfully", id=task_id)


def _share_result(message: str, task, user_id: Optional[str]) -> ShareResult:
    task_read = TaskRead.model_validate(task)
    target = next((user for user in task_read.shared_with if user.id == user_id), None)
    return ShareResult(
        message=message,
        task=task_read,
        shared_with=target,
        share_count=len(task_read.shared_with),
    )


@router.patch("/{task_id}/share", response_model=ShareResult)
def share_task(
    task_id: int,
    body: ShareRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Share a task with another user. Owner only.

    Raises:
        InvalidArgument 400: Sharing with yourself
        NotFound 404: Unknown task or user
        Conflict 409: Already shared with this user
    """
    task = task_service.share_task(db, principal, task_id, body.shared_with)
    return _share_result("Task shared successfully", task, body.shared_with)


@router.patch("/{task_id}/unshare", response_model=TaskMessage)
def unshare_task(
    task_id: int,
    body: ShareRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """Remove a user from the task's shared list. Owner only."""
    task = task_service.unshare_task(db, principal, task_id, body.shared_with)
    return TaskMessage(message="Task unshared successfully", task=task)
