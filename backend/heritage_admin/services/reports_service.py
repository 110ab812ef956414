"""User, booking, revenue and module reports.

Result sets are small, so rows are fetched for the date range and
aggregated here rather than in SQL.
"""

import logging
import time
from collections import Counter, defaultdict
from datetime import date
from typing import Any

from sqlalchemy import func
from sqlmodel import select

from heritage_admin.core.config import settings
from heritage_admin.core.errors import BackendError
from heritage_admin.models.booking import BOOKING_MODELS, HotelBooking
from heritage_admin.models.content import AppFeedback
from heritage_admin.models.user import HeritageUser
from heritage_admin.services.base import TableService
from heritage_admin.services.booking_service import MODULE_NAMES, BookingService, check_module
from heritage_admin.services.call_request_service import CallRequestService
from heritage_admin.services.chat_service import ChatService
from heritage_admin.services.user_service import UserService
from heritage_admin.utils.dates import DateRange, as_utc, default_date_range, isoformat

logger = logging.getLogger(__name__)

SLOW_RESPONSE_MS = 2000


def format_status(status: str) -> str:
    """snake_case -> Title Case."""
    return " ".join(word[:1].upper() + word[1:] for word in (status or "").split("_"))


def module_name(module: str) -> str:
    return MODULE_NAMES.get(module, module)


def money(value: float) -> float:
    return round(value, 2)


def _day(value) -> date:
    return as_utc(value).date()


class ReportsService(TableService):

    def _range(self, date_range: DateRange | None) -> DateRange:
        return date_range or default_date_range(settings.default_report_days)

    def _bookings(self, date_range: DateRange, modules: list[str] | None = None) -> list[dict[str, Any]]:
        bookings = BookingService(self.session)
        rows = []
        for module in modules or list(BOOKING_MODELS):
            for b in bookings.fetch_module(module, date_range):
                rows.append(
                    {
                        "module": module,
                        "status": b.booking_status or "pending",
                        "payment_status": b.payment_status or "pending",
                        "total_amount": float(b.total_amount or 0),
                        "day": _day(b.created_at),
                    }
                )
        return rows

    @staticmethod
    def _count_trend(days: list[date], values: list[date]) -> list[dict[str, Any]]:
        counts = Counter(values)
        return [{"date": d.isoformat(), "count": counts.get(d, 0)} for d in days]

    @staticmethod
    def _revenue_trend(days: list[date], rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        per_day: dict[date, float] = defaultdict(float)
        for row in rows:
            per_day[row["day"]] += row["total_amount"]
        return [{"date": d.isoformat(), "revenue": money(per_day.get(d, 0.0))} for d in days]

    def user_report(self, date_range: DateRange | None = None) -> dict[str, Any]:
        date_range = self._range(date_range)
        users_svc = UserService(self.session)
        users = users_svc.registrations(date_range)
        names = users_svc.type_names()

        total = len(users)
        active = sum(1 for u in users if u.is_verified)
        by_type = Counter(users_svc.type_name(names, u.user_type_id) for u in users)
        return {
            "total_users": total,
            "active_users": active,
            "inactive_users": total - active,
            "users_by_type": [{"type": name, "count": count} for name, count in by_type.most_common()],
            "registration_trends": self._count_trend(date_range.days, [_day(u.created_at) for u in users]),
        }

    def booking_report(self, date_range: DateRange | None = None) -> dict[str, Any]:
        date_range = self._range(date_range)
        rows = self._bookings(date_range)
        by_status = Counter(r["status"] for r in rows)
        by_module = Counter(r["module"] for r in rows)
        return {
            "total_bookings": len(rows),
            "bookings_by_status": [{"status": format_status(s), "count": c} for s, c in by_status.items()],
            "bookings_by_module": [{"module": module_name(m), "count": c} for m, c in by_module.items()],
            "booking_trends": self._count_trend(date_range.days, [r["day"] for r in rows]),
        }

    def revenue_report(self, date_range: DateRange | None = None) -> dict[str, Any]:
        date_range = self._range(date_range)
        rows = self._bookings(date_range)
        paid = [r for r in rows if r["payment_status"] == "paid"]

        by_module: dict[str, float] = defaultdict(float)
        for r in paid:
            by_module[r["module"]] += r["total_amount"]
        by_payment: dict[str, float] = defaultdict(float)
        for r in rows:
            by_payment[r["payment_status"]] += r["total_amount"]

        return {
            "total_revenue": money(sum(r["total_amount"] for r in paid)),
            "currency": settings.default_currency,
            "revenue_by_module": [{"module": module_name(m), "revenue": money(v)} for m, v in by_module.items()],
            "revenue_trends": self._revenue_trend(date_range.days, paid),
            "revenue_by_payment_status": [
                {"status": format_status(s), "revenue": money(v)} for s, v in by_payment.items()
            ],
        }

    def module_report(self, module: str, date_range: DateRange | None = None) -> dict[str, Any]:
        check_module(module)
        date_range = self._range(date_range)
        rows = self._bookings(date_range, [module])
        paid = [r for r in rows if r["payment_status"] == "paid"]
        by_status = Counter(r["status"] for r in rows)
        return {
            "module": module_name(module),
            "total_bookings": len(rows),
            "total_revenue": money(sum(r["total_amount"] for r in paid)),
            "bookings_by_status": [{"status": format_status(s), "count": c} for s, c in by_status.items()],
            "revenue_trends": self._revenue_trend(date_range.days, paid),
        }

    def dashboard_summary(self) -> dict[str, Any]:
        with self.backend_call("count users"):
            total_users = self.session.exec(select(func.count()).select_from(HeritageUser)).one()
            open_feedback = self.session.exec(
                select(func.count())
                .select_from(AppFeedback)
                .where((AppFeedback.status == "Open") | (AppFeedback.status.is_(None)))  # type: ignore
            ).one()

        rows = []
        bookings = BookingService(self.session)
        for module in BOOKING_MODELS:
            rows.extend(bookings.fetch_module(module))
        statuses = Counter(b.booking_status or "pending" for b in rows)
        revenue = sum(float(b.total_amount or 0) for b in rows if b.payment_status == "paid")

        chat = ChatService(self.session)
        return {
            "total_users": total_users,
            "total_bookings": len(rows),
            "pending_bookings": statuses.get("pending", 0),
            "completed_bookings": statuses.get("completed", 0),
            "total_revenue": money(revenue),
            "currency": settings.default_currency,
            "active_conversations": chat.count_active_conversations(),
            "unread_messages": chat.count_unread_for_staff(),
            "pending_call_requests": CallRequestService(self.session).count_pending(),
            "open_feedback": open_feedback,
        }

    def recent_activities(self, limit: int = 10, date_range: DateRange | None = None) -> list[dict[str, Any]]:
        """Latest hotel bookings and user registrations, newest first."""
        bookings = select(HotelBooking).order_by(HotelBooking.created_at.desc()).limit(5)  # type: ignore
        users = select(HeritageUser).order_by(HeritageUser.created_at.desc()).limit(5)  # type: ignore
        if date_range is not None:
            bookings = bookings.where(HotelBooking.created_at.between(date_range.start, date_range.end))  # type: ignore
            users = users.where(HeritageUser.created_at.between(date_range.start, date_range.end))  # type: ignore
        with self.backend_call("fetch recent activity"):
            recent_bookings = self.session.exec(bookings).all()
            recent_users = self.session.exec(users).all()

        activities = [
            {
                "id": f"booking-{b.booking_id}",
                "type": "booking",
                "title": f"New {b.booking_status or 'pending'} booking",
                "description": f"{b.customer_name or 'Guest'} - {b.booking_reference or f'HTL-{b.booking_id}'}",
                "timestamp": isoformat(b.created_at),
                "module": "hotel",
                "amount": float(b.total_amount or 0),
            }
            for b in recent_bookings
        ]
        activities.extend(
            {
                "id": f"user-{u.user_id}",
                "type": "user",
                "title": "New user registration",
                "description": f"{u.full_name or 'Unknown User'} ({u.email or u.phone or 'no contact'})",
                "timestamp": isoformat(u.created_at),
            }
            for u in recent_users
        )
        activities.sort(key=lambda a: a["timestamp"] or "", reverse=True)
        return activities[:limit]

    def system_health(self) -> dict[str, str]:
        started = time.perf_counter()
        try:
            with self.backend_call("check database"):
                self.session.exec(select(HeritageUser.user_id).limit(1)).all()
        except BackendError:
            return {"status": "error", "message": "Database connection failed"}
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if elapsed_ms > SLOW_RESPONSE_MS:
            logger.warning(f"Slow database response: {elapsed_ms}ms")
            return {"status": "warning", "message": f"Slow response time: {elapsed_ms}ms"}
        return {"status": "healthy", "message": f"Response time: {elapsed_ms}ms"}
