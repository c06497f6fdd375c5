from .task_share import TaskShare
from .user import User, LoginHistory
from .role import Role, RoleType
from .task import Task, TaskCategory, TaskPriority, TaskStatus
from .tokens import EmailVerificationToken, PasswordResetToken

__all__ = [
    "User", "LoginHistory",
    "Role", "RoleType",
    "Task", "TaskShare", "TaskCategory", "TaskPriority", "TaskStatus",
    "EmailVerificationToken", "PasswordResetToken",
]
