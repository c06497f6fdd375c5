import os
import sys

from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from taskmanager.core.security import get_password_hash
from taskmanager.db.session import engine, init_db
from taskmanager.models import Role, RoleType, User


def create_initial_user():
    print("--- Initial Super Admin Creation ---")

    email = os.getenv("FIRST_SUPERUSER_EMAIL", "admin@example.com").strip().lower()
    password = os.getenv("FIRST_SUPERUSER_PASSWORD", "adminpassword")
    name = os.getenv("FIRST_SUPERUSER_NAME", "Super Admin")
    phone = os.getenv("FIRST_SUPERUSER_PHONE", "+10000000000")

    init_db()
    with Session(engine) as session:
        # Check if user already exists
        user = session.exec(select(User).where(User.email == email)).first()
        if user:
            print(f"User with email {email} already exists.")
            return

        print(f"Creating user {email}...")
        db_user = User(
            name=name,
            email=email,
            phone=phone,
            password=get_password_hash(password),
            email_verified=True,
        )
        session.add(db_user)
        session.flush()
        session.add(Role(user_id=db_user.id, role=RoleType.SUPER_ADMIN.value))
        session.commit()
        print("Initial super admin created successfully!")
        print(f"Email: {email}")
        print(f"Role: {RoleType.SUPER_ADMIN.value}")


if __name__ == "__main__":
    create_initial_user()
