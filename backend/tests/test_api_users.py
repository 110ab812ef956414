"""Tests for the users API."""

from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from tests.conftest import seed_row, seed_user, seed_user_type, test_engine
from heritage_admin.models.booking import HotelBooking, TourBooking
from heritage_admin.models.user import HeritageUser, UserProfile


def test_list_users_paginated_newest_first(staff_client, staff_user):
    now = datetime.now(timezone.utc)
    old = seed_user("Old Visitor", "old@example.com", created_at=now - timedelta(days=10))
    new = seed_user("New Visitor", "new@example.com", created_at=now + timedelta(minutes=1))

    data = staff_client.get("/api/users/", params={"limit": 2}).json()

    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert [u["user_id"] for u in data["data"]] == [new, staff_user.user_id]

    second = staff_client.get("/api/users/", params={"limit": 2, "page": 2}).json()
    assert [u["user_id"] for u in second["data"]] == [old]


def test_list_users_filters(staff_client, staff_user):
    tourist = seed_user_type("tourist", "Tourist")
    seed_user("Lakshmi", "lakshmi@example.com", user_type_id=tourist, is_verified=True)
    seed_user("Dev", "dev@example.com", user_type_id=tourist)

    by_type = staff_client.get("/api/users/", params={"user_type_id": tourist}).json()
    assert by_type["total"] == 2
    assert {u["user_type"] for u in by_type["data"]} == {"Tourist"}

    verified = staff_client.get("/api/users/", params={"user_type_id": tourist, "is_verified": True}).json()
    assert [u["full_name"] for u in verified["data"]] == ["Lakshmi"]

    search = staff_client.get("/api/users/", params={"search": "LAKSH"}).json()
    assert [u["email"] for u in search["data"]] == ["lakshmi@example.com"]


def test_list_users_date_range(staff_client):
    seed_user("Early", "early@example.com", created_at=datetime(2024, 1, 5, 12, tzinfo=timezone.utc))
    seed_user("Later", "later@example.com", created_at=datetime(2024, 3, 5, 12, tzinfo=timezone.utc))

    data = staff_client.get("/api/users/", params={"start_date": "2024-01-01", "end_date": "2024-01-31"}).json()
    assert [u["full_name"] for u in data["data"]] == ["Early"]


def test_user_type_names_fall_back(staff_client):
    guide = seed_user_type("guide")
    uid = seed_user("No Type", "notype@example.com")
    gid = seed_user("Guide", "guide@example.com", user_type_id=guide)

    assert staff_client.get(f"/api/users/{uid}").json()["user_type"] == "Unknown"
    assert staff_client.get(f"/api/users/{gid}").json()["user_type"] == "guide"


def test_list_user_types(staff_client):
    seed_user_type("tourist", "Tourist", display_order=2)
    types = staff_client.get("/api/users/types").json()
    assert [t["name"] for t in types] == ["Admin", "Tourist"]


def test_user_details_include_profile(staff_client):
    uid = seed_user()
    seed_row(UserProfile(user_id=uid, avatar_url="https://cdn.test/a.png", tags=["history"], is_instagram_connected=True))

    data = staff_client.get(f"/api/users/{uid}").json()
    assert data["profile"]["avatar_url"] == "https://cdn.test/a.png"
    assert data["profile"]["tags"] == ["history"]
    assert data["profile"]["is_instagram_connected"] is True


def test_get_missing_user(staff_client):
    response = staff_client.get("/api/users/424242")
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_update_user(staff_client):
    uid = seed_user()
    response = staff_client.patch(f"/api/users/{uid}", json={"full_name": "Ravi K", "language_code": "HI"})
    assert response.status_code == 200
    assert response.json()["full_name"] == "Ravi K"
    assert response.json()["language_code"] == "HI"


def test_update_user_validation(staff_client):
    uid = seed_user()
    bad_email = staff_client.patch(f"/api/users/{uid}", json={"email": "not-an-email"})
    assert bad_email.status_code == 422
    assert bad_email.json()["detail"] == "Invalid email address"

    bad_type = staff_client.patch(f"/api/users/{uid}", json={"user_type_id": 999})
    assert bad_type.json()["detail"] == "Unknown user type"


def test_verify_and_delete(staff_client):
    uid = seed_user()
    seed_row(UserProfile(user_id=uid))

    assert staff_client.post(f"/api/users/{uid}/verify", json={"is_verified": True}).json()["is_verified"] is True
    assert staff_client.delete(f"/api/users/{uid}").json() == {"status": "deleted"}

    with Session(test_engine) as session:
        assert session.get(HeritageUser, uid) is None


def test_user_bookings_across_modules(staff_client):
    uid = seed_user()
    now = datetime.now(timezone.utc)
    seed_row(HotelBooking(user_id=uid, total_amount=4500, created_at=now - timedelta(days=1)))
    tour = seed_row(TourBooking(user_id=uid, booking_reference="TOUR-AMB-1", total_amount=1200, created_at=now))
    seed_row(TourBooking(user_id=uid + 1, total_amount=10))

    bookings = staff_client.get(f"/api/users/{uid}/bookings").json()
    assert [b["module"] for b in bookings] == ["tour", "hotel"]
    assert bookings[0]["booking_reference"] == tour.booking_reference
