"""
Task Model Module

This module defines the Task model and its closed vocabularies (category,
priority, status). A task is owned by exactly one user and may be shared with
others through the TaskShare junction table.
"""
from enum import Enum
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import TYPE_CHECKING

from taskmanager.core.clock import utcnow
from taskmanager.models.task_share import TaskShare

if TYPE_CHECKING:
    from taskmanager.models.user import User


class TaskCategory(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    STUDY = "Study"
    HEALTH = "Health"
    OTHER = "Other"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    """
    Task status values. Any status may be set from any other; there is no
    enforced pending -> in-progress -> completed sequence.
    """
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Task(SQLModel, table=True):
    """
    Task table model.

    Attributes:
        id: Auto-incrementing primary key
        user_id: Owner of the task; immutable after creation
        title: Short title (required, max 100 characters)
        description: Optional details (max 500 characters)
        category: One of TaskCategory
        priority: One of TaskPriority
        status: One of TaskStatus (default pending)
        due_date: When the task is due (UTC)
        reminder_sent_at: Set once the due-soon reminder went out for the
            current due_date; cleared when due_date changes
        created_at / updated_at: Audit timestamps
    """
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, nullable=False)

    title: str = Field(nullable=False)
    description: str = ""
    category: str = Field(nullable=False, index=True)
    priority: str = Field(default=TaskPriority.MEDIUM.value)
    status: str = Field(default=TaskStatus.PENDING.value, index=True)
    due_date: datetime = Field(nullable=False, index=True)

    reminder_sent_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    owner: Optional["User"] = Relationship()
    shared_with: List["User"] = Relationship(back_populates="shared_tasks", link_model=TaskShare)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def is_shared_with(self, user_id: str) -> bool:
        return any(user.id == user_id for user in self.shared_with)

    def is_visible_to(self, user_id: str) -> bool:
        return self.is_owned_by(user_id) or self.is_shared_with(user_id)
