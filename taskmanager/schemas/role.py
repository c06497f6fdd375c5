from pydantic import EmailStr, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from taskmanager.schemas.base import CamelModel
from taskmanager.schemas.user import (
    MIN_PASSWORD_LENGTH, PHONE_PATTERN, PasswordConfirmation, UserRead, normalize_email,
)


class RoleRead(CamelModel):
    id: str
    user_id: str
    role: str
    name: str
    email: str
    created_at: datetime


# Admin-created account: a verified user plus its role record
class RoleCreate(PasswordConfirmation):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(default="", pattern=r"^$|" + PHONE_PATTERN)
    role: Optional[str] = None

    normalize_email_field = field_validator("email")(normalize_email)


class RoleUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=MIN_PASSWORD_LENGTH)
    confirm_password: Optional[str] = None

    normalize_email_field = field_validator("email")(normalize_email)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password and self.password != self.confirm_password:
            raise ValueError("Passwords do not match, please try again")
        return self


class RoleChange(CamelModel):
    role: Optional[str] = None


class RoleList(CamelModel):
    count: int
    data: List[RoleRead]


class LoginResponse(CamelModel):
    token: str
    user: UserRead
    role: RoleRead
