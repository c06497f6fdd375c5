import pytest
from jose import jwt
from sqlmodel import Session, select

from conftest import PASSWORD, login
from taskmanager.core.errors import Forbidden, InvalidArgument
from taskmanager.core.policy import check_role_change, ensure_can_access_record
from taskmanager.core.security import Principal
from taskmanager.models import Role, RoleType, User


def new_account(email, role=None):
    body = {
        "name": "New Person",
        "email": email,
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
    }
    if role:
        body["role"] = role
    return body


# === Policy ===

@pytest.mark.parametrize(
    "actor, requested, allowed",
    [
        ("user", "user", False),
        ("admin", "user", True),
        ("admin", "admin", False),
        ("admin", "super_admin", False),
        ("super_admin", "user", True),
        ("super_admin", "admin", True),
        ("super_admin", "super_admin", True),
    ],
)
def test_role_change_escalation_guard(actor, requested, allowed):
    principal = Principal(id="actor", role=actor)
    if allowed:
        assert check_role_change(principal, requested).value == requested
    else:
        with pytest.raises(Forbidden):
            check_role_change(principal, requested)


def test_unknown_role_value_is_invalid():
    with pytest.raises(InvalidArgument):
        check_role_change(Principal(id="actor", role="super_admin"), "owner")
    with pytest.raises(InvalidArgument):
        check_role_change(Principal(id="actor", role="super_admin"), None)


def test_self_access_always_passes():
    ensure_can_access_record(Principal(id="u1", role="user"), "u1")
    with pytest.raises(Forbidden):
        ensure_can_access_record(Principal(id="u1", role="user"), "u2")
    ensure_can_access_record(Principal(id="u1", role="admin"), "u2")


# === Endpoints ===

def test_read_own_role(client, make_user):
    user, headers = make_user("alice@example.com", name="Alice")
    response = client.get("/api/roles/me", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == user["id"]
    assert body["role"] == "user"
    assert body["email"] == "alice@example.com"

    response = client.get(f"/api/roles/{body['id']}", headers=headers)
    assert response.status_code == 200


def test_list_roles_requires_admin(client, make_user, make_account):
    _, user_headers = make_user("alice@example.com")
    _, _, admin_headers = make_account("admin@example.com", RoleType.ADMIN)

    response = client.get("/api/roles", headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized: Admin access required"}

    response = client.get("/api/roles", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 2


def test_user_cannot_read_other_role_record(client, make_user):
    _, alice_headers = make_user("alice@example.com")
    _, bob_headers = make_user("bob@example.com")
    bob_role = client.get("/api/roles/me", headers=bob_headers).json()

    response = client.get(f"/api/roles/{bob_role['id']}", headers=alice_headers)
    assert response.status_code == 403

    response = client.put(f"/api/roles/{bob_role['id']}", json={"name": "Hacked"}, headers=alice_headers)
    assert response.status_code == 403


def test_admin_creates_user_but_not_admin(client, make_account):
    _, _, admin_headers = make_account("admin@example.com", RoleType.ADMIN)

    response = client.post("/api/roles", json=new_account("new@example.com"), headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "user"

    # Created accounts are pre-verified
    assert login(client, "new@example.com").status_code == 200

    response = client.post("/api/roles", json=new_account("boss@example.com", "admin"), headers=admin_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized: Only SUPER_ADMIN can assign ADMIN or SUPER_ADMIN roles"}

    response = client.post("/api/roles", json=new_account("new@example.com"), headers=admin_headers)
    assert response.status_code == 409


def test_super_admin_creates_admin(client, make_account):
    _, _, super_headers = make_account("root@example.com", RoleType.SUPER_ADMIN)
    response = client.post("/api/roles", json=new_account("boss@example.com", "admin"), headers=super_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "admin"


def test_create_role_rejects_unknown_role(client, make_account):
    _, _, super_headers = make_account("root@example.com", RoleType.SUPER_ADMIN)
    response = client.post("/api/roles", json=new_account("x@example.com", "owner"), headers=super_headers)
    assert response.status_code == 400


def test_regular_user_cannot_create_role(client, make_user):
    _, headers = make_user("alice@example.com")
    response = client.post("/api/roles", json=new_account("x@example.com"), headers=headers)
    assert response.status_code == 403


def test_change_role_matrix(client, make_user, make_account):
    alice, alice_headers = make_user("alice@example.com")
    _, _, admin_headers = make_account("admin@example.com", RoleType.ADMIN)
    _, _, super_headers = make_account("root@example.com", RoleType.SUPER_ADMIN)
    alice_role = client.get("/api/roles/me", headers=alice_headers).json()
    url = f"/api/roles/{alice_role['id']}/role"

    response = client.patch(url, json={"role": "admin"}, headers=alice_headers)
    assert response.status_code == 403

    response = client.patch(url, json={"role": "admin"}, headers=admin_headers)
    assert response.status_code == 403

    response = client.patch(url, json={"role": "user"}, headers=admin_headers)
    assert response.status_code == 200

    response = client.patch(url, json={"role": "banana"}, headers=super_headers)
    assert response.status_code == 400

    response = client.patch(url, json={"role": "admin"}, headers=super_headers)
    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    # Token issued before the change keeps its role until the next login
    assert client.get("/api/roles", headers=alice_headers).status_code == 403
    token = login(client, "alice@example.com").json()["token"]
    assert jwt.get_unverified_claims(token)["role"] == "admin"
    assert client.get("/api/roles", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_admin_cannot_modify_super_admin(client, make_account):
    _, _, admin_headers = make_account("admin@example.com", RoleType.ADMIN)
    _, root_role, _ = make_account("root@example.com", RoleType.SUPER_ADMIN)

    response = client.patch(f"/api/roles/{root_role['id']}/role", json={"role": "user"}, headers=admin_headers)
    assert response.status_code == 403

    response = client.delete(f"/api/roles/{root_role['id']}", headers=admin_headers)
    assert response.status_code == 403


def test_update_own_role_record(client, make_user):
    _, headers = make_user("alice@example.com", name="Alice")
    role = client.get("/api/roles/me", headers=headers).json()

    response = client.put(
        f"/api/roles/{role['id']}",
        json={"name": "Alice B", "password": "brand-new-pass", "confirmPassword": "brand-new-pass"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Alice B"
    assert login(client, "alice@example.com", password="brand-new-pass").status_code == 200

    # The user record is the single source of truth
    profile = client.get("/api/users/profile", headers=headers).json()
    assert profile["name"] == "Alice B"


def test_admin_deletes_account(client, make_user, make_account, engine):
    alice, alice_headers = make_user("alice@example.com")
    _, admin_role, admin_headers = make_account("admin@example.com", RoleType.ADMIN)
    alice_role = client.get("/api/roles/me", headers=alice_headers).json()

    response = client.delete(f"/api/roles/{alice_role['id']}", headers=alice_headers)
    assert response.status_code == 403

    response = client.delete(f"/api/roles/{admin_role['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Users cannot delete themselves"}

    response = client.delete(f"/api/roles/{alice_role['id']}", headers=admin_headers)
    assert response.status_code == 200

    with Session(engine) as session:
        assert session.get(User, alice["id"]) is None
        assert session.exec(select(Role).where(Role.user_id == alice["id"])).first() is None

    response = client.get(f"/api/roles/{alice_role['id']}", headers=admin_headers)
    assert response.status_code == 404


def test_every_user_has_one_role(client, make_user, engine):
    make_user("alice@example.com")
    make_user("bob@example.com")
    with Session(engine) as session:
        users = session.exec(select(User)).all()
        for user in users:
            roles = session.exec(select(Role).where(Role.user_id == user.id)).all()
            assert len(roles) == 1
