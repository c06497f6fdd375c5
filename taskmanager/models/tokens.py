"""
Redemption Token Models

Single-use, time-boxed tokens emailed to users as links. Each row is deleted as
soon as it is redeemed; rows past expires_at are rejected on redemption and
purged by the periodic maintenance job.
"""
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

from taskmanager.core.clock import utcnow


class RedemptionTokenBase(SQLModel):
    token: str = Field(unique=True, index=True, nullable=False)
    user_id: str = Field(foreign_key="users.id", index=True, nullable=False)
    expires_at: datetime = Field(nullable=False, index=True)
    created_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class EmailVerificationToken(RedemptionTokenBase, table=True):
    """Activates an account; valid for 24 hours by default."""
    __tablename__ = "email_verification_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)


class PasswordResetToken(RedemptionTokenBase, table=True):
    """Allows overwriting the password hash; valid for 1 hour by default."""
    __tablename__ = "password_reset_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
