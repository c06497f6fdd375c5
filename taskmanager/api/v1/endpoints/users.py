"""
User Account Endpoints Module

This module provides the account lifecycle endpoints: registration with an
optional profile photo, email verification, login/logout, password reset and
self-service profile management. Registration and profile updates are
multipart forms; everything else is JSON.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Response, UploadFile, status
from sqlmodel import Session

from taskmanager.api import deps
from taskmanager.core.config import settings
from taskmanager.core.email import Mailer, get_mailer
from taskmanager.core.security import Principal
from taskmanager.core.storage import PhotoStorage, get_photo_storage
from taskmanager.db.session import get_db
from taskmanager.schemas.base import Message
from taskmanager.schemas.role import LoginResponse
from taskmanager.schemas.user import (
    AccountDelete, EmailRequest, LoginRequest, PasswordReset, ProfileUpdate, UserRead, UserRegister,
)
from taskmanager.services import accounts
from taskmanager.services.roles import role_view

router = APIRouter()


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


@router.post("/register", response_model=Message, status_code=status.HTTP_201_CREATED)
def register_user(
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    photo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> Any:
    """
    Register a new, unverified account.

    The user, its role record (role "user") and a verification token are
    created together; the verification link is emailed before the
    transaction commits, so a failed send leaves nothing behind.

    Returns:
        Message: Instructions to check the inbox

    Raises:
        InvalidArgument 400: If a field fails validation or the photo is rejected
        Conflict 409: If the email is already registered
        Unavailable 503: If the verification email could not be sent
    """
    data = UserRegister(
        name=name,
        email=email,
        phone=phone,
        password=password,
        confirm_password=confirm_password,
    )
    accounts.register_user(db, data, mailer, storage, photo=photo)
    return Message(message="User registered successfully. Please check your email to verify your account.")


@router.get("/verify-email/{token}", response_model=Message)
def verify_email(
    token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> Any:
    """
    Redeem an email verification link. The token is single-use; a welcome
    email is sent in the background once the account is active.
    """
    user = accounts.verify_email(db, token)
    background_tasks.add_task(accounts.send_welcome_email, mailer, user.name, user.email, user.phone)
    return Message(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=Message)
def resend_verification(
    body: EmailRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> Any:
    accounts.resend_verification(db, body.email, mailer)
    return Message(message="Verification email sent. Please check your inbox.")


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    client: accounts.ClientInfo = Depends(deps.get_client_info),
) -> Any:
    """
    Authenticate a user and issue a session token.

    The token is returned in the body and also set as an HTTP-only cookie for
    browser clients.

    Raises:
        NotFound 404: If no account uses this email
        Unauthenticated 401: If the password is wrong
        EmailNotVerified 403: If the email has not been verified yet
    """
    token, user, role = accounts.login(db, body.email, body.password, client)

    # httponly=True prevents JavaScript access to the cookie
    response.set_cookie(
        key="access_token",
        value=f"Bearer {token}",
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
    )
    return LoginResponse(token=token, user=UserRead.model_validate(user), role=role_view(role, user))


@router.post("/logout", response_model=Message)
def logout(response: Response) -> Any:
    """Clear the session cookie. API clients simply discard their token."""
    response.delete_cookie("access_token")
    return Message(message="Logged out successfully")


@router.post("/forgot-password", response_model=Message)
def forgot_password(
    body: EmailRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> Any:
    accounts.request_password_reset(db, body.email, mailer)
    return Message(message="Password reset link sent to your email")


@router.post("/reset-password/{token}", response_model=Message)
def reset_password(
    token: str,
    body: PasswordReset,
    db: Session = Depends(get_db),
) -> Any:
    accounts.reset_password(db, token, body.password)
    return Message(message="Password has been reset successfully")


@router.get("", response_model=List[UserRead])
def read_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Directory of registered users, used to pick who to share a task with.
    Any authenticated user may read it; passwords are never included.
    """
    return accounts.list_users(db)


@router.get("/profile", response_model=UserRead)
def read_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    return accounts.get_profile(db, principal.id)


@router.put("/profile", response_model=UserRead)
def update_profile(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    current_password: Optional[str] = Form(None, alias="currentPassword"),
    password: Optional[str] = Form(None),
    confirm_password: Optional[str] = Form(None, alias="confirmPassword"),
    photo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Update the caller's own profile.

    Only provided fields change. Changing the password requires
    currentPassword plus matching password/confirmPassword. A new photo
    replaces the old one, which is removed once the update has committed.
    """
    data = ProfileUpdate(
        name=_blank_to_none(name),
        email=_blank_to_none(email),
        phone=_blank_to_none(phone),
        current_password=_blank_to_none(current_password),
        password=_blank_to_none(password),
        confirm_password=_blank_to_none(confirm_password),
    )
    return accounts.update_profile(db, principal.id, data, storage, photo=photo)


@router.delete("/profile", response_model=Message)
def delete_profile(
    body: Optional[AccountDelete] = None,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    principal: Principal = Depends(deps.get_current_principal),
) -> Any:
    """
    Permanently delete the caller's account after re-confirming the password.
    Login history, pending tokens, owned tasks, share memberships and the
    role record go with it.
    """
    accounts.delete_account(db, principal.id, body.password if body else None, storage)
    return Message(message="Account deleted successfully")
