from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from taskmanager.core.config import settings
from taskmanager.core.errors import ConfigError, Expired, InvalidArgument, InvalidToken
from taskmanager.core.security import (
    generate_opaque_token, get_password_hash, issue_token, verify_password, verify_token,
)


def test_issue_and_verify_round_trip():
    token = issue_token("user-1", "admin")
    principal = verify_token(token)
    assert principal.id == "user-1"
    assert principal.role == "admin"
    assert principal.is_privileged


def test_token_carries_one_hour_validity():
    issued = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    token = issue_token("user-1", "user", now=issued)
    claims = jwt.get_unverified_claims(token)
    assert claims["exp"] - claims["iat"] == 3600


def test_expired_token_is_rejected():
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = issue_token("user-1", "user", now=issued)
    with pytest.raises(Expired):
        verify_token(token)


def test_tampered_token_is_rejected():
    token = issue_token("user-1", "user")
    forged = issue_token("user-1", "super_admin", secret="another-secret")
    header, payload, signature = token.split(".")
    _, forged_payload, _ = forged.split(".")
    with pytest.raises(InvalidToken):
        verify_token(f"{header}.{forged_payload}.{signature}")


def test_token_without_role_is_rejected():
    token = jwt.encode(
        {"id": "user-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_garbage_token_is_rejected():
    with pytest.raises(InvalidToken):
        verify_token("not-a-jwt")


def test_issue_requires_secret(monkeypatch):
    monkeypatch.setattr(settings, "SECRET_KEY", None)
    with pytest.raises(ConfigError):
        issue_token("user-1", "user")


def test_issue_requires_subject_and_role():
    with pytest.raises(InvalidArgument):
        issue_token("", "user")
    with pytest.raises(InvalidArgument):
        issue_token("user-1", None)


def test_password_hashing():
    hashed = get_password_hash("password123")
    assert hashed != "password123"
    assert verify_password("password123", hashed)
    assert not verify_password("wrong-password", hashed)
    assert not verify_password("", hashed)


def test_opaque_tokens_are_random_hex():
    first, second = generate_opaque_token(), generate_opaque_token()
    assert first != second
    assert len(first) == 64
    int(first, 16)
