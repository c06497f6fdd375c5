"""
Role Authorization Policy

Decides which role-store operations an authenticated caller may perform.
Rules, in precedence order:

1. Self-access: a user may always read and update their own role record.
2. Listing, creating and deleting role records (and touching anyone else's
   record) require the admin or super_admin role.
3. Assigning admin or super_admin requires the acting role to be exactly
   super_admin; admins may only assign the user role.
4. Only a super_admin may modify or delete another super_admin's record.

All checks raise Forbidden on violation; unknown role values raise InvalidArgument.
"""
from typing import Optional

from taskmanager.core.errors import Forbidden, InvalidArgument
from taskmanager.core.security import Principal
from taskmanager.models.role import PRIVILEGED_ROLES, Role, RoleType


def parse_role(value: Optional[str]) -> RoleType:
    if not value or value not in RoleType.values():
        raise InvalidArgument(
            f"Invalid or missing role specified. Must be one of: {', '.join(RoleType.values())}"
        )
    return RoleType(value)


def require_admin(principal: Principal) -> None:
    if not principal.is_privileged:
        raise Forbidden("Unauthorized: Admin access required")


def ensure_can_access_record(principal: Principal, record_user_id: str, action: str = "access") -> None:
    """Self-access always passes; anyone else's record needs an admin role."""
    if principal.id == record_user_id:
        return
    if not principal.is_privileged:
        raise Forbidden(f"Unauthorized: Cannot {action} other user data")


def ensure_can_assign(principal: Principal, new_role: RoleType) -> None:
    if new_role.value in PRIVILEGED_ROLES and principal.role != RoleType.SUPER_ADMIN.value:
        raise Forbidden("Unauthorized: Only SUPER_ADMIN can assign ADMIN or SUPER_ADMIN roles")


def check_role_change(principal: Principal, requested: Optional[str]) -> RoleType:
    """Full gate for PATCH /roles/{id}/role: admin-only, valid value, escalation guard."""
    require_admin(principal)
    new_role = parse_role(requested)
    ensure_can_assign(principal, new_role)
    return new_role


def ensure_can_manage(principal: Principal, target: Role) -> None:
    """Only a super_admin may modify another super_admin's record."""
    if principal.id == target.user_id:
        return
    if target.role == RoleType.SUPER_ADMIN.value and principal.role != RoleType.SUPER_ADMIN.value:
        raise Forbidden("Unauthorized: Cannot modify a SUPER_ADMIN record")
