"""
Role Model Module

This module defines the Role record and the RoleType enumeration. A Role is a
pure authorization projection of a User: it references the user by id and holds
nothing but the role attribute.
"""
from enum import Enum
from typing import List
from sqlmodel import SQLModel, Field
import uuid
from datetime import datetime

from taskmanager.core.clock import utcnow


class RoleType(str, Enum):
    """
    Enumeration of roles defining permission levels in the system.

    Role hierarchy (from least to most privileged):
    - USER: Default role assigned at registration
    - ADMIN: May list, create and delete role records and assign the USER role
    - SUPER_ADMIN: Everything an admin may do, plus assigning ADMIN/SUPER_ADMIN
    """
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


PRIVILEGED_ROLES = (RoleType.ADMIN.value, RoleType.SUPER_ADMIN.value)


class Role(SQLModel, table=True):
    """
    Authorization record paired one-to-one with a User.

    Attributes:
        id: Unique identifier (UUID) of the role record
        user_id: The user this record authorizes (unique)
        role: One of the RoleType values
        created_at: When the record was created
    """
    __tablename__ = "roles"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True, nullable=False)
    role: str = Field(default=RoleType.USER.value, nullable=False)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
