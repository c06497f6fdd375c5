# ------------------------------------------
# Account service functions
# - register_user()        : User + Role + verification token, atomically
# - verify_email()         : redeems a verification token (single use)
# - resend_verification()  : invalidates old links and emails a new one
# - login()                : checks credentials, records history, issues a token
# - request_password_reset() / reset_password()
# - update_profile() / delete_account()
# Works with a SQLModel session, a Mailer and a PhotoStorage
# ------------------------------------------

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Type

from fastapi import UploadFile
from sqlmodel import Session, select

from taskmanager.core.clock import utcnow
from taskmanager.core.config import settings
from taskmanager.core.email import EmailDeliveryError, Mailer, render_email
from taskmanager.core.errors import (
    Conflict, EmailNotVerified, Expired, InvalidArgument, InvalidToken, NotFound, Unauthenticated,
)
from taskmanager.core.security import generate_opaque_token, get_password_hash, issue_token, verify_password
from taskmanager.core.storage import PhotoStorage
from taskmanager.db.transaction import atomic
from taskmanager.models import (
    EmailVerificationToken, LoginHistory, PasswordResetToken, Role, RoleType, Task, User,
)
from taskmanager.models.tokens import RedemptionTokenBase
from taskmanager.schemas.user import MIN_PASSWORD_LENGTH, ProfileUpdate, UserRegister

logger = logging.getLogger(__name__)

USER_EXISTS = "User already exists"
USER_NOT_FOUND_EMAIL = "User not found with this email ID please try again"
EMAIL_IN_USE = "Email already in use"
PASSWORD_REQUIRED = "Current password is required"
INCORRECT_PASSWORD = "Entered password is incorrect, try again"
PASSWORDS_DO_NOT_MATCH = "Passwords do not match, please try again"


@dataclass
class ClientInfo:
    ip_address: str = "N/A"
    user_agent: str = "N/A"


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.exec(select(User).where(User.email == email.strip().lower())).first()


def get_role_for_user(db: Session, user_id: str) -> Optional[Role]:
    return db.exec(select(Role).where(Role.user_id == user_id)).first()


def list_users(db: Session) -> List[User]:
    return db.exec(select(User).order_by(User.name)).all()


# === Redemption tokens ===

def _create_redemption_token(db: Session, model: Type[RedemptionTokenBase], user_id: str, ttl: timedelta, now: datetime):
    record = model(token=generate_opaque_token(), user_id=user_id, expires_at=now + ttl)
    db.add(record)
    return record


def _delete_tokens_for(db: Session, model: Type[RedemptionTokenBase], user_id: str) -> None:
    for record in db.exec(select(model).where(model.user_id == user_id)).all():
        db.delete(record)


def _redeem(db: Session, model: Type[RedemptionTokenBase], token: str, now: datetime) -> Tuple[RedemptionTokenBase, User]:
    """
    Look up a redemption token and its user.

    Raises:
        InvalidToken: Unknown (or already redeemed) token
        Expired: Token past its TTL; the stale record is deleted
        NotFound: The referenced user no longer exists; the orphaned record is deleted
    """
    record = db.exec(select(model).where(model.token == token)).first()
    if not record:
        raise InvalidToken("Invalid or expired link")

    if record.is_expired(now):
        db.delete(record)
        db.commit()
        raise Expired("This link has expired, please request a new one")

    user = db.get(User, record.user_id)
    if not user:
        db.delete(record)
        db.commit()
        raise NotFound(USER_NOT_FOUND_EMAIL)
    return record, user


def _send_verification(mailer: Mailer, user: User, token: str) -> None:
    verification_url = f"{settings.FRONTEND_URL}/verify-email/{token}"
    mailer.send(
        user.email,
        "Verify Your Email Address",
        render_email(
            "verification.html",
            name=user.name,
            verification_url=verification_url,
            expire_hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS,
        ),
    )


def send_welcome_email(mailer: Mailer, name: str, email: str, phone: str) -> None:
    """Runs as a background task after verification; failures are only logged."""
    try:
        mailer.send(
            email,
            "Welcome to Task Manager App!",
            render_email("welcome.html", name=name, email=email, phone=phone),
        )
    except EmailDeliveryError as e:
        logger.warning(f"Welcome email to {email} not sent: {e}")


# === Registration & verification ===

def register_user(
    db: Session,
    data: UserRegister,
    mailer: Mailer,
    storage: PhotoStorage,
    photo: Optional[UploadFile] = None,
    now: Optional[datetime] = None,
) -> User:
    """
    Create an unverified user, its role record and a verification token in one
    transaction, and email the verification link before committing. Any failure
    rolls everything back and removes the uploaded photo.
    """
    now = now or utcnow()
    with atomic(db, conflict_message=USER_EXISTS) as tx:
        if get_user_by_email(db, data.email):
            raise Conflict(USER_EXISTS)

        photo_url = ""
        if photo is not None and photo.filename:
            photo_url = storage.store(photo)
            tx.on_rollback(lambda: storage.delete(photo_url))

        user = User(
            name=data.name,
            email=data.email,
            phone=data.phone,
            password=get_password_hash(data.password),
            photo=photo_url,
            email_verified=False,
        )
        db.add(user)
        db.flush()

        db.add(Role(user_id=user.id, role=RoleType.USER.value))
        record = _create_redemption_token(
            db, EmailVerificationToken, user.id,
            timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS), now,
        )
        db.flush()

        _send_verification(mailer, user, record.token)

    logger.info(f"Registered user {user.id}, verification pending")
    return user


def verify_email(db: Session, token: str, now: Optional[datetime] = None) -> User:
    now = now or utcnow()
    record, user = _redeem(db, EmailVerificationToken, token, now)
    with atomic(db):
        user.email_verified = True
        db.add(user)
        db.delete(record)
    db.refresh(user)
    logger.info(f"Email verified for user {user.id}")
    return user


def resend_verification(db: Session, email: str, mailer: Mailer, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    user = get_user_by_email(db, email)
    if not user:
        raise NotFound(USER_NOT_FOUND_EMAIL)
    if user.email_verified:
        raise Conflict("Email is already verified")

    with atomic(db):
        # Outstanding links stop working once a new one is issued
        _delete_tokens_for(db, EmailVerificationToken, user.id)
        record = _create_redemption_token(
            db, EmailVerificationToken, user.id,
            timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS), now,
        )
        db.flush()
        _send_verification(mailer, user, record.token)


# === Login ===

def login(
    db: Session,
    email: str,
    password: str,
    client: Optional[ClientInfo] = None,
) -> Tuple[str, User, Role]:
    """
    Authenticate and issue a session token.

    Raises:
        NotFound: No account with this email (404)
        EmailNotVerified: The email is not verified yet (403)
        Unauthenticated: Wrong password (401)
    """
    user = get_user_by_email(db, email)
    if not user:
        logger.info("Login failed - user not found")
        raise NotFound(USER_NOT_FOUND_EMAIL)

    if not user.email_verified:
        raise EmailNotVerified()

    if not verify_password(password, user.password):
        logger.info(f"Login failed - incorrect password for user {user.id}")
        raise Unauthenticated(INCORRECT_PASSWORD)

    role = get_role_for_user(db, user.id)
    if not role:
        raise NotFound("Role not found for this user")

    token = issue_token(user.id, role.role)

    client = client or ClientInfo()
    with atomic(db):
        db.add(LoginHistory(user_id=user.id, ip_address=client.ip_address, user_agent=client.user_agent))
    db.refresh(user)
    db.refresh(role)
    logger.info(f"User {user.id} logged in")
    return token, user, role


# === Password reset ===

def request_password_reset(db: Session, email: str, mailer: Mailer, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    user = get_user_by_email(db, email)
    if not user:
        raise NotFound(USER_NOT_FOUND_EMAIL)

    with atomic(db):
        _delete_tokens_for(db, PasswordResetToken, user.id)
        record = _create_redemption_token(
            db, PasswordResetToken, user.id,
            timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES), now,
        )
        db.flush()
        reset_url = f"{settings.FRONTEND_URL}/reset-password/{record.token}"
        mailer.send(
            user.email,
            "Password Reset Request",
            render_email(
                "password_reset.html",
                name=user.name,
                reset_url=reset_url,
                expire_minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES,
            ),
        )


def reset_password(db: Session, token: str, password: str, now: Optional[datetime] = None) -> User:
    now = now or utcnow()
    _, user = _redeem(db, PasswordResetToken, token, now)
    with atomic(db):
        user.password = get_password_hash(password)
        db.add(user)
        _delete_tokens_for(db, PasswordResetToken, user.id)
    logger.info(f"Password reset for user {user.id}")
    return user


# === Profile ===

def get_profile(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound(USER_NOT_FOUND_EMAIL)
    return user


def _check_password_change(user: User, data: ProfileUpdate) -> Optional[str]:
    """Return the new password when a complete, valid change was requested."""
    if not (data.password or data.confirm_password):
        return None
    if not data.current_password:
        raise InvalidArgument(PASSWORD_REQUIRED)
    if not verify_password(data.current_password, user.password):
        raise InvalidArgument(INCORRECT_PASSWORD)
    if data.password != data.confirm_password:
        raise InvalidArgument(PASSWORDS_DO_NOT_MATCH)
    if len(data.password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return data.password


def update_profile(
    db: Session,
    user_id: str,
    data: ProfileUpdate,
    storage: PhotoStorage,
    photo: Optional[UploadFile] = None,
) -> User:
    """
    Update name, email, phone, password and photo in one transaction. The old
    photo is removed only after the commit succeeds; a newly uploaded one is
    removed if it does not.
    """
    with atomic(db, conflict_message=EMAIL_IN_USE) as tx:
        user = get_profile(db, user_id)

        if data.email and data.email != user.email:
            if get_user_by_email(db, data.email):
                raise Conflict(EMAIL_IN_USE)
            user.email = data.email

        new_password = _check_password_change(user, data)
        if new_password:
            user.password = get_password_hash(new_password)

        if data.name and data.name.strip():
            user.name = data.name.strip()
        if data.phone:
            user.phone = data.phone

        if photo is not None and photo.filename:
            old_photo = user.photo
            new_photo = storage.store(photo)
            tx.on_rollback(lambda: storage.delete(new_photo))
            tx.on_commit(lambda: storage.delete(old_photo))
            user.photo = new_photo

        db.add(user)
    db.refresh(user)
    return user


def delete_account_rows(db: Session, user: User) -> None:
    """
    Stage deletion of an account and everything hanging off it: login history,
    redemption tokens, owned tasks (with their shares), memberships in other
    users' shares, and the paired role record.
    """
    for model in (LoginHistory, EmailVerificationToken, PasswordResetToken):
        for row in db.exec(select(model).where(model.user_id == user.id)).all():
            db.delete(row)

    for task in db.exec(select(Task).where(Task.user_id == user.id)).all():
        db.delete(task)

    role = get_role_for_user(db, user.id)
    if role:
        db.delete(role)

    # Dependents go first on FK-enforcing backends
    db.flush()
    db.delete(user)


def delete_account(db: Session, user_id: str, password: Optional[str], storage: PhotoStorage) -> None:
    with atomic(db) as tx:
        user = get_profile(db, user_id)
        if not password:
            raise InvalidArgument(PASSWORD_REQUIRED)
        if not verify_password(password, user.password):
            raise InvalidArgument(INCORRECT_PASSWORD)

        photo = user.photo
        tx.on_commit(lambda: storage.delete(photo))
        delete_account_rows(db, user)
    logger.info(f"Account {user_id} deleted")
