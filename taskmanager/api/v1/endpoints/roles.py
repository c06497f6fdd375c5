"""
Role Store Endpoints Module

Every route authenticates the caller; the authorization rules themselves
(self-access, admin-only operations, the escalation guard) are applied in
taskmanager.services.roles through core.policy.
"""
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from taskmanager.api import deps
from taskmanager.core.security import Principal
from taskmanager.core.storage import PhotoStorage, get_photo_storage
from taskmanager.db.session import get_db
from taskmanager.schemas.base import Message
from taskmanager.schemas.role import RoleChange, RoleCreate, RoleList, RoleRead, RoleUpdate
from taskmanager.services import roles

router = APIRouter()


@router.get("/me", response_model=RoleRead)
def read_my_role(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    return roles.get_my_role(db, principal)


@router.get("", response_model=RoleList)
def read_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_admin),
) -> Any:
    """
    List every role record with the paired user's name and email.

    Only administrators can access this endpoint.
    """
    data = roles.list_roles(db, principal)
    return RoleList(count=len(data), data=data)


@router.post("", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_admin),
) -> Any:
    """
    Create a pre-verified account together with its role record.

    Admins may only create "user" accounts; admin and super_admin accounts
    require a super_admin caller.

    Raises:
        Forbidden 403: Caller is not an admin, or attempts an escalation
        InvalidArgument 400: Unknown role value
        Conflict 409: Email already registered
    """
    return roles.create_role_record(db, principal, body)


@router.get("/{role_id}", response_model=RoleRead)
def read_role(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    return roles.get_role(db, principal, role_id)


@router.put("/{role_id}", response_model=RoleRead)
def update_role(
    role_id: str,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Update the name, email or password of the account behind a role record.
    Users may update their own record; anyone else's requires an admin.
    """
    return roles.update_role_record(db, principal, role_id, body)


@router.delete("/{role_id}", response_model=Message)
def delete_role(
    role_id: str,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    principal: Principal = Depends(deps.get_current_admin),
) -> Any:
    """
    Delete a role record and the account it belongs to. Administrators cannot
    delete their own record here; self-deletion goes through /users/profile.
    """
    roles.delete_role_record(db, principal, role_id, storage)
    return Message(message="Role record deleted successfully")


@router.patch("/{role_id}/role", response_model=RoleRead)
def change_role(
    role_id: str,
    body: RoleChange,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Assign a new role. Only super_admin may grant admin or super_admin.
    The new role is carried by the target's next session token.
    """
    return roles.change_role(db, principal, role_id, body.role)
