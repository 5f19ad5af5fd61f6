from fastapi.testclient import TestClient

from conftest import API, PASSWORD, bearer, create_user
from epharmacy import models


def test_user_can_register_login_and_read_me(client: TestClient):
    register_response = client.post(
        f"{API}/auth/register",
        json={"email": "Jane@Example.com", "password": "secret1", "name": "Jane Q Doe"},
    )
    assert register_response.status_code == 201
    body = register_response.json()
    assert body["token"]
    assert body["user"]["email"] == "jane@example.com"
    assert body["user"]["first_name"] == "Jane"
    assert body["user"]["last_name"] == "Q Doe"
    assert body["user"]["role"] == "user"

    login_response = client.post(f"{API}/auth/login", json={"email": "jane@example.com", "password": "secret1"})
    assert login_response.status_code == 200
    token = login_response.json()["token"]

    me = client.get(f"{API}/auth/me", headers=bearer(token))
    assert me.status_code == 200
    assert me.json()["email"] == "jane@example.com"
    assert me.json()["name"] == "Jane Q Doe"


def test_duplicate_email_is_rejected(client: TestClient):
    payload = {"email": "dup@example.com", "password": "secret1", "first_name": "Dup"}
    assert client.post(f"{API}/auth/register", json=payload).status_code == 201
    again = client.post(f"{API}/auth/register", json=payload)
    assert again.status_code == 409


def test_short_password_is_rejected(client: TestClient):
    response = client.post(
        f"{API}/auth/register",
        json={"email": "short@example.com", "password": "123", "first_name": "Short"},
    )
    assert response.status_code == 400


def test_login_with_wrong_password_fails(client: TestClient, customer):
    response = client.post(f"{API}/auth/login", json={"email": customer.email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_endpoints_are_scoped_to_account_type(client: TestClient, admin, customer):
    # An admin cannot use the customer login, and vice versa.
    assert client.post(f"{API}/auth/login", json={"email": admin.email, "password": PASSWORD}).status_code == 401
    assert (
        client.post(f"{API}/auth/admin/login", json={"email": customer.email, "password": PASSWORD}).status_code
        == 401
    )

    admin_login = client.post(f"{API}/auth/admin/login", json={"email": admin.email, "password": PASSWORD})
    assert admin_login.status_code == 200
    assert admin_login.json()["user"]["role"] == "admin"
    assert admin_login.json()["user"]["is_email_verified"] is True


def test_pharmacy_registration_and_login(client: TestClient):
    payload = {
        "name": "Sunrise Pharmacy",
        "email": "sunrise@example.com",
        "password": "secret1",
        "phone": "+15550123",
        "address": "42 High Street",
        "license_number": "LIC-42",
    }
    response = client.post(f"{API}/auth/pharmacy/register", json=payload)
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "pharmacy"
    assert response.json()["user"]["is_email_verified"] is False

    duplicate_license = client.post(
        f"{API}/auth/pharmacy/register",
        json={**payload, "email": "other@example.com"},
    )
    assert duplicate_license.status_code == 409

    login = client.post(f"{API}/auth/pharmacy/login", json={"email": payload["email"], "password": "secret1"})
    assert login.status_code == 200
    me = client.get(f"{API}/auth/me", headers=bearer(login.json()["token"]))
    assert me.json()["name"] == "Sunrise Pharmacy"


def test_deactivated_user_cannot_log_in(client: TestClient, db):
    user = create_user(db, email="inactive@example.com")
    user.is_active = False
    db.commit()

    response = client.post(f"{API}/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 401


def test_forgot_password_does_not_reveal_accounts(client: TestClient, customer):
    known = client.post(f"{API}/auth/forgot-password", json={"email": customer.email})
    unknown = client.post(f"{API}/auth/forgot-password", json={"email": "nobody@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_protected_routes_require_a_valid_token(client: TestClient):
    assert client.get(f"{API}/users/profile").status_code == 401
    assert client.get(f"{API}/users/profile", headers=bearer("not-a-token")).status_code == 401


def test_role_mismatch_is_forbidden(client: TestClient, customer_headers, admin_headers):
    assert client.get(f"{API}/admin/dashboard", headers=customer_headers).status_code == 403
    assert client.get(f"{API}/orders", headers=admin_headers).status_code == 403


def test_profile_update_and_password_change(client: TestClient, customer, customer_headers):
    update = client.put(
        f"{API}/users/profile",
        json={"first_name": "Updated", "phone": "+15550999", "last_name": "  "},
        headers=customer_headers,
    )
    assert update.status_code == 200
    assert update.json()["first_name"] == "Updated"
    assert update.json()["last_name"] == "User"
    assert update.json()["phone"] == "+15550999"

    wrong_current = client.post(
        f"{API}/users/change-password",
        json={"current_password": "nope-nope", "new_password": "brand-new"},
        headers=customer_headers,
    )
    assert wrong_current.status_code == 400

    changed = client.post(
        f"{API}/users/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new"},
        headers=customer_headers,
    )
    assert changed.status_code == 200

    login = client.post(f"{API}/auth/login", json={"email": customer.email, "password": "brand-new"})
    assert login.status_code == 200


def test_user_can_deactivate_own_account(client: TestClient, customer, customer_headers):
    response = client.post(f"{API}/users/deactivate", headers=customer_headers)
    assert response.status_code == 200

    # The old token stops working and so does login.
    assert client.get(f"{API}/users/profile", headers=customer_headers).status_code == 401
    login = client.post(f"{API}/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert login.status_code == 401


def test_admin_bootstrap_creates_admin_once(db, monkeypatch):
    from epharmacy.auth.bootstrap import ensure_admin_user

    monkeypatch.setenv("ADMIN_EMAIL", "root@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "root-password")

    assert ensure_admin_user(db) is True
    assert ensure_admin_user(db) is False
    admins = db.query(models.User).filter(models.User.role == models.UserRole.ADMIN).all()
    assert [a.email for a in admins] == ["root@example.com"]
