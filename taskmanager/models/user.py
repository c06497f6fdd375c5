"""
User Model Module

This module defines the User credential record and the append-only login history.
"""
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from taskmanager.core.clock import utcnow
from taskmanager.models.task_share import TaskShare

if TYPE_CHECKING:
    from taskmanager.models.task import Task


class User(SQLModel, table=True):
    """
    User model representing a registered account.

    Users are identified by UUID and authenticated via email/password. Their
    authorization level lives in the paired Role record, not here.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        name: Display name
        email: Login email, stored lower-cased so uniqueness is case-insensitive
        phone: Contact phone number
        password: Hashed password (bcrypt)
        photo: URL of the profile photo ("" when none)
        email_verified: Flips to True once, when a verification token is redeemed
        created_at: When the account was registered
    """
    __tablename__ = "users"

    # Primary key - auto-generated UUID for global uniqueness
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)
    phone: str = Field(nullable=False)
    password: str = Field(nullable=False)
    photo: str = ""

    email_verified: bool = False

    created_at: datetime = Field(default_factory=utcnow, index=True)

    # Tasks other users have shared with this user
    shared_tasks: List["Task"] = Relationship(back_populates="shared_with", link_model=TaskShare)


class LoginHistory(SQLModel, table=True):
    """
    Append-only audit record written on every successful login.
    Removed only when the owning account is deleted.
    """
    __tablename__ = "login_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, nullable=False)
    login_time: datetime = Field(default_factory=utcnow)
    ip_address: str = "N/A"
    user_agent: str = "N/A"
