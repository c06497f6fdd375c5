"""
TaskShare Junction Table Model

This module defines the TaskShare junction table holding each task's
sharedWith set.
"""
from sqlmodel import SQLModel, Field

class TaskShare(SQLModel, table=True):
    """
    Junction table for many-to-many relationship between Tasks and Users for sharing.

    The task owner is tracked separately in Task.user_id and never appears here
    for their own task. The composite primary key makes each share unique.

    Attributes:
        task_id: Foreign key to the task being shared
        user_id: Foreign key to the user the task is shared with
    """
    __tablename__ = "task_shares"

    task_id: int = Field(foreign_key="tasks.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True)
