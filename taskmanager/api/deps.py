"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication and authorization.
Requests pass through an ordered chain: authenticate (get_current_principal),
then authorize (RoleChecker / get_current_admin), then the handler.

Bearer tokens in the Authorization header are the primary transport; the
HTTP-only access_token cookie set at login is accepted as a fallback for
browser clients.
"""
import logging
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from taskmanager.core.config import settings
from taskmanager.core.errors import Expired, Forbidden, InvalidToken, Unauthenticated
from taskmanager.core.security import Principal, verify_token
from taskmanager.models.role import RoleType
from taskmanager.services.accounts import ClientInfo

logger = logging.getLogger(__name__)

# auto_error=False allows us to check cookies as a fallback
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/users/login",
    auto_error=False,
)


def get_current_principal(
    request: Request,
    token: Optional[str] = Depends(reusable_oauth2),
) -> Principal:
    """
    Dependency that authenticates the caller from its session token.

    No database lookup happens here: the id and role are taken from the
    verified token, so a role change takes effect at the user's next login.

    Args:
        request: FastAPI request object (used to access cookies)
        token: Optional bearer token from Authorization header

    Returns:
        Principal: id and role of the authenticated caller

    Raises:
        Unauthenticated: If no token is provided, or it is invalid or expired
        ConfigError: If no signing secret is configured (propagates as 500)
    """
    if not token:
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[len("Bearer "):]

    if not token:
        raise Unauthenticated("No token, authorization denied")

    try:
        return verify_token(token)
    except (InvalidToken, Expired) as e:
        logger.info(f"Token verification failed: {e.message}")
        raise Unauthenticated("Token is not valid")


class RoleChecker:
    """
    Dependency factory for checking the caller's role.

    Usage: Depends(RoleChecker([RoleType.ADMIN, RoleType.SUPER_ADMIN]))
    """
    def __init__(self, allowed_roles: List[RoleType]):
        self.allowed_roles = [role.value for role in allowed_roles]

    def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in self.allowed_roles:
            raise Forbidden("Unauthorized: Admin access required")
        return principal


get_current_admin = RoleChecker([RoleType.ADMIN, RoleType.SUPER_ADMIN])


def get_client_info(request: Request) -> ClientInfo:
    """IP (first X-Forwarded-For hop, else the peer address) and user agent."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    elif request.client:
        ip_address = request.client.host
    else:
        ip_address = "N/A"
    return ClientInfo(
        ip_address=ip_address or "N/A",
        user_agent=request.headers.get("user-agent") or "N/A",
    )
