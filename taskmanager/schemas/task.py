from pydantic import ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime

from taskmanager.core.clock import ensure_utc
from taskmanager.models.task import TaskCategory, TaskPriority, TaskStatus
from taskmanager.schemas.base import CamelModel
from taskmanager.schemas.user import UserSummary

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def _clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Title is required")
    return value


class TaskCreate(CamelModel):
    title: str = Field(max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    category: TaskCategory
    priority: TaskPriority
    status: TaskStatus = TaskStatus.PENDING
    due_date: datetime
    shared_with: List[str] = []

    clean_title = field_validator("title")(_clean_title)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


# Any field may be patched; unknown keys (including userId) are dropped
class TaskUpdate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    shared_with: Optional[List[str]] = None

    clean_title = field_validator("title")(_clean_title)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v


class StatusUpdate(CamelModel):
    status: Optional[str] = None


class ShareRequest(CamelModel):
    shared_with: Optional[str] = None


class TaskRead(CamelModel):
    id: int
    title: str
    description: str
    category: str
    priority: str
    status: str
    due_date: datetime
    user_id: str
    owner: Optional[UserSummary] = None
    shared_with: List[UserSummary] = []
    created_at: datetime
    updated_at: datetime


class TaskList(CamelModel):
    count: int
    tasks: List[TaskRead]


class CategoryTaskList(TaskList):
    category: str


class TaskMessage(CamelModel):
    message: str
    task: TaskRead


class ShareResult(TaskMessage):
    shared_with: UserSummary
    share_count: int


class TaskDeleted(CamelModel):
    message: str
    id: int
