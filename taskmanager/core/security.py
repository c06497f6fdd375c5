"""
Security Module

Password hashing, opaque redemption tokens and the session token service.
Session tokens are HS256 JWTs embedding the subject id and role with a fixed
validity window; they are never persisted server-side.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from taskmanager.core.config import settings
from taskmanager.core.errors import ConfigError, Expired, InvalidArgument, InvalidToken
from taskmanager.models.role import PRIVILEGED_ROLES, RoleType

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_opaque_token() -> str:
    """Random token for email verification and password reset links."""
    return secrets.token_hex(32)


@dataclass(frozen=True)
class Principal:
    """Identity attached to a request: who is calling and with which role."""
    id: str
    role: str

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def issue_token(
    user_id: Optional[str],
    role: Optional[str],
    *,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Sign a session token for the given subject and role.

    Raises:
        ConfigError: If no signing secret is configured
        InvalidArgument: If user_id or role is missing
    """
    secret = secret or settings.SECRET_KEY
    if not secret:
        raise ConfigError("SECRET_KEY is not configured")
    if not user_id:
        raise InvalidArgument("User ID is required for token generation")
    if not role:
        raise InvalidArgument("Role is required for token generation")

    issued_at = now or datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    role_value = getattr(role, "value", role)
    to_encode = {"id": str(user_id), "role": role_value, "iat": issued_at, "exp": expire}
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def verify_token(token: str, *, secret: Optional[str] = None) -> Principal:
    """
    Validate a session token and return its subject and role.

    Raises:
        Expired: If the token is past its validity window
        InvalidToken: On a bad signature, malformed token or missing claims
    """
    secret = secret or settings.SECRET_KEY
    if not secret:
        raise ConfigError("SECRET_KEY is not configured")
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise Expired("Session token has expired")
    except JWTError as e:
        logger.info(f"JWT error: {type(e).__name__}")
        raise InvalidToken("Token verification failed")

    user_id = payload.get("id")
    role = payload.get("role")
    if not user_id or not role:
        raise InvalidToken("Invalid token payload: missing id or role")
    if role not in RoleType.values():
        raise InvalidToken("Invalid token payload: unknown role")
    return Principal(id=user_id, role=role)
