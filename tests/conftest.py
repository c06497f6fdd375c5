import os
import re
import tempfile

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="taskmanager-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from taskmanager.core.email import EmailDeliveryError, Mailer, get_mailer
from taskmanager.core.security import get_password_hash
from taskmanager.core.storage import PhotoStorage, get_photo_storage
from taskmanager.db.session import get_db, init_db
from taskmanager.main import app
from taskmanager.models import Role, RoleType, User

PASSWORD = "password123"


class RecordingMailer(Mailer):
    """Keeps every message so tests can follow the emailed links."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise EmailDeliveryError("SMTP relay unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})

    def messages_to(self, email: str):
        return [m for m in self.sent if m["to"] == email]

    def last_token(self, email: str, kind: str = "verify-email") -> str:
        for message in reversed(self.messages_to(email)):
            match = re.search(rf"/{kind}/([0-9a-f]{{64}})", message["html"])
            if match:
                return match.group(1)
        raise AssertionError(f"No {kind} link sent to {email}")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def storage(tmp_path):
    return PhotoStorage(str(tmp_path / "uploads"), 1024 * 1024)


@pytest.fixture
def client(engine, mailer, storage):
    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_photo_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email, name="Test User", phone="+15551234567", password=PASSWORD, files=None):
    return client.post(
        "/api/users/register",
        data={
            "name": name,
            "email": email,
            "phone": phone,
            "password": password,
            "confirmPassword": password,
        },
        files=files,
    )


def login(client, email, password=PASSWORD):
    return client.post("/api/users/login", json={"email": email, "password": password})


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client, mailer):
    """Register, verify and log in a regular user; returns (user, headers)."""

    def _make(email, name="Test User"):
        assert register(client, email, name=name).status_code == 201
        token = mailer.last_token(email)
        assert client.get(f"/api/users/verify-email/{token}").status_code == 200
        response = login(client, email)
        assert response.status_code == 200
        body = response.json()
        return body["user"], auth_headers(body["token"])

    return _make


@pytest.fixture
def make_account(client, engine):
    """Insert a verified account with the given role directly, then log in."""

    def _make(email, role=RoleType.USER, name="Staff Member"):
        with Session(engine) as session:
            user = User(
                name=name,
                email=email,
                phone="+15550000000",
                password=get_password_hash(PASSWORD),
                email_verified=True,
            )
            session.add(user)
            session.flush()
            session.add(Role(user_id=user.id, role=role.value))
            session.commit()
        response = login(client, email)
        assert response.status_code == 200
        body = response.json()
        return body["user"], body["role"], auth_headers(body["token"])

    return _make
