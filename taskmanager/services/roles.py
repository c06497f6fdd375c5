# ------------------------------------------
# Role store service functions
# - get_my_role() / get_role() / list_roles()
# - create_role_record()  : admin-created verified account + role
# - update_role_record()  : name/email/password of the paired user
# - delete_role_record()  : cascades the whole account
# - change_role()         : escalation-guarded role assignment
# Every function receives the acting Principal and applies core.policy
# ------------------------------------------

import logging
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from taskmanager.core.errors import Conflict, InvalidArgument, NotFound
from taskmanager.core.policy import (
    check_role_change, ensure_can_access_record, ensure_can_assign, ensure_can_manage, parse_role, require_admin,
)
from taskmanager.core.security import Principal, get_password_hash
from taskmanager.core.storage import PhotoStorage
from taskmanager.db.transaction import atomic
from taskmanager.models import Role, RoleType, User
from taskmanager.schemas.role import RoleCreate, RoleRead, RoleUpdate
from taskmanager.services.accounts import (
    EMAIL_IN_USE, USER_EXISTS, delete_account_rows, get_role_for_user, get_user_by_email,
)

logger = logging.getLogger(__name__)

ROLE_NOT_FOUND = "Role not found"


def role_view(role: Role, user: User) -> RoleRead:
    return RoleRead(
        id=role.id,
        user_id=role.user_id,
        role=role.role,
        name=user.name,
        email=user.email,
        created_at=role.created_at,
    )


def _load(db: Session, role_id: str) -> Tuple[Role, User]:
    row = db.exec(
        select(Role, User).join(User, User.id == Role.user_id).where(Role.id == role_id)
    ).first()
    if not row:
        raise NotFound(ROLE_NOT_FOUND)
    return row[0], row[1]


def get_my_role(db: Session, principal: Principal) -> RoleRead:
    role = get_role_for_user(db, principal.id)
    user = db.get(User, principal.id)
    if not role or not user:
        raise NotFound(ROLE_NOT_FOUND)
    return role_view(role, user)


def list_roles(db: Session, principal: Principal) -> List[RoleRead]:
    require_admin(principal)
    rows = db.exec(
        select(Role, User).join(User, User.id == Role.user_id).order_by(Role.created_at)
    ).all()
    return [role_view(role, user) for role, user in rows]


def get_role(db: Session, principal: Principal, role_id: str) -> RoleRead:
    role, user = _load(db, role_id)
    ensure_can_access_record(principal, role.user_id, "access")
    return role_view(role, user)


def create_role_record(db: Session, principal: Principal, data: RoleCreate) -> RoleRead:
    """
    Create a pre-verified account and its role record in one transaction.

    The requested role defaults to "user"; assigning admin or super_admin is
    reserved for super_admin callers.
    """
    require_admin(principal)
    new_role = parse_role(data.role or RoleType.USER.value)
    ensure_can_assign(principal, new_role)

    with atomic(db, conflict_message=USER_EXISTS):
        if get_user_by_email(db, data.email):
            raise Conflict(USER_EXISTS)
        user = User(
            name=data.name.strip(),
            email=data.email,
            phone=data.phone,
            password=get_password_hash(data.password),
            email_verified=True,
        )
        db.add(user)
        db.flush()
        role = Role(user_id=user.id, role=new_role.value)
        db.add(role)

    db.refresh(user)
    db.refresh(role)
    logger.info(f"User {principal.id} created account {user.id} with role {role.role}")
    return role_view(role, user)


def update_role_record(db: Session, principal: Principal, role_id: str, data: RoleUpdate) -> RoleRead:
    role, user = _load(db, role_id)
    ensure_can_access_record(principal, role.user_id, "update")
    ensure_can_manage(principal, role)

    with atomic(db, conflict_message=EMAIL_IN_USE):
        if data.email and data.email != user.email:
            if get_user_by_email(db, data.email):
                raise Conflict(EMAIL_IN_USE)
            user.email = data.email
        if data.name and data.name.strip():
            user.name = data.name.strip()
        if data.password:
            user.password = get_password_hash(data.password)
        db.add(user)

    db.refresh(user)
    db.refresh(role)
    return role_view(role, user)


def delete_role_record(db: Session, principal: Principal, role_id: str, storage: PhotoStorage) -> None:
    require_admin(principal)
    role, user = _load(db, role_id)
    if role.user_id == principal.id:
        raise InvalidArgument("Users cannot delete themselves")
    ensure_can_manage(principal, role)

    target_id = role.user_id
    with atomic(db) as tx:
        photo = user.photo
        tx.on_commit(lambda: storage.delete(photo))
        delete_account_rows(db, user)
    logger.info(f"User {principal.id} deleted account {target_id}")


def change_role(db: Session, principal: Principal, role_id: str, requested: Optional[str]) -> RoleRead:
    """
    Assign a new role. The change is visible in the target's next session
    token; tokens already issued keep the role they were signed with.
    """
    new_role = check_role_change(principal, requested)
    role, user = _load(db, role_id)
    ensure_can_manage(principal, role)

    previous = role.role
    with atomic(db):
        role.role = new_role.value
        db.add(role)

    db.refresh(role)
    logger.info(f"User {principal.id} changed role of {role.user_id} from {previous} to {role.role}")
    return role_view(role, user)
