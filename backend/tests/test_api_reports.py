"""Tests for reports, CSV export and the dashboard summary."""

from datetime import datetime, timezone

from tests.conftest import seed_conversation, seed_row, seed_user, seed_user_type
from heritage_admin.models.booking import EventBooking, HotelBooking, TourBooking
from heritage_admin.models.content import AppFeedback, CallSupportRequest
from heritage_admin.services.reports_service import format_status
from heritage_admin.utils.export import report_to_csv

RANGE = {"start_date": "2024-03-01", "end_date": "2024-03-03"}


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def _seed_bookings():
    seed_row(HotelBooking(booking_status="confirmed", payment_status="paid", total_amount=3000, created_at=_at(1)))
    seed_row(HotelBooking(booking_status="completed", payment_status="paid", total_amount=1500.25, created_at=_at(3)))
    seed_row(TourBooking(payment_status="pending", total_amount=800, created_at=_at(3)))
    seed_row(EventBooking(booking_status="cancelled", payment_status="refunded", total_amount=200, created_at=_at(2)))
    # outside the range
    seed_row(TourBooking(payment_status="paid", total_amount=9999, created_at=_at(20)))


def test_format_status():
    assert format_status("in_progress") == "In Progress"
    assert format_status("") == ""


def test_user_report(staff_client):
    tourist = seed_user_type("tourist", "Tourist")
    seed_user("A", "a@example.com", user_type_id=tourist, is_verified=True, created_at=_at(1))
    seed_user("B", "b@example.com", user_type_id=tourist, created_at=_at(1, 18))
    seed_user("C", "c@example.com", created_at=_at(3))

    report = staff_client.get("/api/reports/users", params=RANGE).json()

    assert report["total_users"] == 3
    assert report["active_users"] == 1
    assert report["inactive_users"] == 2
    assert report["users_by_type"] == [{"type": "Tourist", "count": 2}, {"type": "Unknown", "count": 1}]
    assert report["registration_trends"] == [
        {"date": "2024-03-01", "count": 2},
        {"date": "2024-03-02", "count": 0},
        {"date": "2024-03-03", "count": 1},
    ]


def test_booking_report(staff_client):
    _seed_bookings()

    report = staff_client.get("/api/reports/bookings", params=RANGE).json()

    assert report["total_bookings"] == 4
    statuses = {row["status"]: row["count"] for row in report["bookings_by_status"]}
    assert statuses == {"Confirmed": 1, "Completed": 1, "Pending": 1, "Cancelled": 1}
    modules = {row["module"]: row["count"] for row in report["bookings_by_module"]}
    assert modules == {"Hotels": 2, "Tours": 1, "Events": 1}
    assert [t["count"] for t in report["booking_trends"]] == [1, 1, 2]


def test_revenue_report_counts_paid_only(staff_client):
    _seed_bookings()

    report = staff_client.get("/api/reports/revenue", params=RANGE).json()

    assert report["total_revenue"] == 4500.25
    assert report["currency"] == "INR"
    assert report["revenue_by_module"] == [{"module": "Hotels", "revenue": 4500.25}]
    assert [t["revenue"] for t in report["revenue_trends"]] == [3000, 0, 1500.25]
    by_payment = {row["status"]: row["revenue"] for row in report["revenue_by_payment_status"]}
    assert by_payment == {"Paid": 4500.25, "Pending": 800, "Refunded": 200}


def test_module_report(staff_client):
    _seed_bookings()

    report = staff_client.get("/api/reports/modules/hotel", params=RANGE).json()
    assert report["module"] == "Hotels"
    assert report["total_bookings"] == 2
    assert report["total_revenue"] == 4500.25

    bad = staff_client.get("/api/reports/modules/spa", params=RANGE)
    assert bad.status_code == 422


def test_unknown_report_kind(staff_client):
    response = staff_client.get("/api/reports/weather")
    assert response.status_code == 422
    assert response.json()["detail"] == "Unknown report: weather"


def test_export_csv(staff_client):
    _seed_bookings()

    response = staff_client.get("/api/reports/revenue/export", params=RANGE)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="revenue-report.csv"' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[:3] == ["metric,value", "total_revenue,4500.25", "currency,INR"]
    assert "# revenue_by_module" in lines
    assert "Hotels,4500.25" in lines


def test_export_module_requires_module(staff_client):
    response = staff_client.get("/api/reports/module/export")
    assert response.json()["detail"] == "Module is required for a module report"


def test_report_to_csv_skips_empty_sections():
    text = report_to_csv({"total": 0, "rows": [], "trend": [{"date": "2024-03-01", "count": 0}]})
    assert text == "metric,value\ntotal,0\n\n# trend\ndate,count\n2024-03-01,0\n"


def test_dashboard_summary(staff_client, staff_user):
    _seed_bookings()
    uid = seed_user()
    seed_conversation(uid, unread_count_executive=2)
    seed_conversation(uid, status="closed", unread_count_executive=5)
    seed_row(AppFeedback(category="bug"))
    seed_row(AppFeedback(category="bug", status="Resolved"))
    seed_row(CallSupportRequest(full_phone_number="+91 98000 11111"))

    summary = staff_client.get("/api/reports/dashboard").json()

    assert summary == {
        "total_users": 2,
        "total_bookings": 5,
        "pending_bookings": 2,
        "completed_bookings": 1,
        "total_revenue": 14499.25,
        "currency": "INR",
        "active_conversations": 1,
        "unread_messages": 2,
        "pending_call_requests": 1,
        "open_feedback": 1,
    }


def test_recent_activities_merge_bookings_and_registrations(staff_client, staff_user):
    seed_row(HotelBooking(booking_status="confirmed", total_amount=3000, customer_name="Ravi", created_at=_at(2)))
    seed_row(
        HotelBooking(booking_reference="HTL-77", customer_name="Meera", total_amount=1200.5, created_at=_at(3, hour=8))
    )
    seed_user("Kavya", email="kavya@example.com", created_at=_at(3, hour=9))

    activities = staff_client.get("/api/reports/dashboard/activities", params=RANGE).json()

    assert [(a["type"], a["title"], a["description"]) for a in activities] == [
        ("user", "New user registration", "Kavya (kavya@example.com)"),
        ("booking", "New pending booking", "Meera - HTL-77"),
        ("booking", "New confirmed booking", f"Ravi - HTL-{activities[2]['id'].split('-')[1]}"),
    ]
    assert activities[1]["amount"] == 1200.5
    assert activities[1]["module"] == "hotel"

    latest = staff_client.get("/api/reports/dashboard/activities", params={"limit": 2}).json()
    assert len(latest) == 2
    assert latest[0]["description"] == "Asha Admin (admin@heritage.test)"


def test_system_health(staff_client):
    health = staff_client.get("/api/reports/dashboard/health").json()
    assert health["status"] == "healthy"
    assert health["message"].startswith("Response time: ")
