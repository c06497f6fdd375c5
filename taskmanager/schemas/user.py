from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from taskmanager.schemas.base import CamelModel

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"
MIN_PASSWORD_LENGTH = 8


def normalize_email(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else value


class PasswordConfirmation(CamelModel):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match, please try again")
        return self


# Properties to receive on registration (multipart form)
class UserRegister(PasswordConfirmation):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(pattern=PHONE_PATTERN)

    normalize_email_field = field_validator("email")(normalize_email)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


# Properties to receive on profile update (multipart form, all optional)
class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    current_password: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None

    normalize_email_field = field_validator("email")(normalize_email)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    normalize_email_field = field_validator("email")(normalize_email)


class EmailRequest(CamelModel):
    email: EmailStr

    normalize_email_field = field_validator("email")(normalize_email)


class PasswordReset(PasswordConfirmation):
    pass


class AccountDelete(CamelModel):
    password: Optional[str] = None


# Properties to return to client
class UserRead(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    photo: str = ""
    email_verified: bool
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: str
    name: str
    email: str
