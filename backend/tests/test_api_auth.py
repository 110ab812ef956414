"""Tests for staff sign-in and session endpoints."""

import logging

from sqlmodel import Session

from tests.conftest import STAFF_PASSWORD, seed_user, seed_user_type, test_engine
from heritage_admin.core.security import verify_password
from heritage_admin.models.user import HeritageUser


def test_login_with_email(client, staff_user):
    response = client.post("/api/auth/login", json={"identifier": "ADMIN@heritage.test", "password": STAFF_PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0
    assert data["user"] == {
        "user_id": staff_user.user_id,
        "full_name": "Asha Admin",
        "email": "admin@heritage.test",
        "role": "admin",
    }

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.json()["user_id"] == staff_user.user_id


def test_login_with_phone(client, staff_user):
    response = client.post("/api/auth/login", json={"identifier": "+919800000001", "password": STAFF_PASSWORD})
    assert response.status_code == 200


def test_login_wrong_password(client, staff_user):
    response = client.post("/api/auth/login", json={"identifier": "admin@heritage.test", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={"identifier": "ghost@heritage.test", "password": "whatever"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={"identifier": "  ", "password": ""})
    assert response.status_code == 422
    assert response.json()["detail"] == "Email or phone and password are required"


def test_tourist_account_refused(client):
    tourist_type = seed_user_type("tourist", "Tourist")
    seed_user(email="tourist@example.com", user_type_id=tourist_type, password="tourist-pass")

    response = client.post("/api/auth/login", json={"identifier": "tourist@example.com", "password": "tourist-pass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Access denied. Staff accounts only."


def test_legacy_hash_never_authenticates(client, caplog):
    admin_type = seed_user_type("admin")
    user_id = seed_user(email="old@heritage.test", user_type_id=admin_type, password_hash="5f4dcc3b5aa765d61d8327deb882cf99")

    with caplog.at_level(logging.WARNING):
        response = client.post("/api/auth/login", json={"identifier": "old@heritage.test", "password": "password"})

    assert response.status_code == 401
    assert f"User {user_id} has a legacy password hash" in caplog.text


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_change_password(staff_client, staff_user):
    response = staff_client.post(
        "/api/auth/change-password",
        json={"current_password": STAFF_PASSWORD, "new_password": "new-secret-1", "confirm_password": "new-secret-1"},
    )
    assert response.status_code == 200

    with Session(test_engine) as session:
        user = session.get(HeritageUser, staff_user.user_id)
        assert verify_password("new-secret-1", user.password_hash)


def test_change_password_rules(staff_client):
    mismatch = staff_client.post(
        "/api/auth/change-password",
        json={"current_password": STAFF_PASSWORD, "new_password": "abcdefgh", "confirm_password": "abcdefgx"},
    )
    assert mismatch.json()["detail"] == "New passwords do not match"

    short = staff_client.post(
        "/api/auth/change-password",
        json={"current_password": STAFF_PASSWORD, "new_password": "short", "confirm_password": "short"},
    )
    assert short.json()["detail"] == "Password must be at least 8 characters"

    wrong = staff_client.post(
        "/api/auth/change-password",
        json={"current_password": "not-it", "new_password": "abcdefgh", "confirm_password": "abcdefgh"},
    )
    assert wrong.status_code == 422
    assert wrong.json()["detail"] == "Current password is incorrect"


def test_logout(staff_client):
    assert staff_client.post("/api/auth/logout").json() == {"status": "ok"}
