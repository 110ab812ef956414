"""Bookings across the platform modules (hotel, tour, event, food, guide)."""

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import select

from heritage_admin.core.config import settings
from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.booking import BOOKING_MODELS, REFERENCE_PREFIXES, BookingBase
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import DateRange, as_utc, isoformat, utcnow
from heritage_admin.utils.pagination import clamp_page, page_payload

logger = logging.getLogger(__name__)

MODULE_NAMES = {
    "hotel": "Hotels",
    "tour": "Tours",
    "event": "Events",
    "food": "Food & Beverages",
    "guide": "Local Guides",
}

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")

_COMMON_FIELDS = set(BookingBase.model_fields)


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def booking_row(module: str, booking: BookingBase) -> dict[str, Any]:
    """Common shape of a booking from any module, with defaults for missing values."""
    details = {k: _plain(v) for k, v in booking.model_dump().items() if k not in _COMMON_FIELDS}
    return {
        "module": module,
        "module_name": MODULE_NAMES[module],
        "booking_id": booking.booking_id,
        "booking_reference": booking.booking_reference or f"{REFERENCE_PREFIXES[module]}-{booking.booking_id}",
        "user_id": booking.user_id,
        "booking_status": booking.booking_status or "pending",
        "payment_status": booking.payment_status or "pending",
        "total_amount": round(float(booking.total_amount or 0), 2),
        "currency": booking.currency or settings.default_currency,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "special_requests": booking.special_requests,
        "payment_method": booking.payment_method,
        "payment_reference": booking.payment_reference,
        "created_at": isoformat(booking.created_at),
        "updated_at": isoformat(booking.updated_at),
        "details": details,
    }


def check_module(module: str) -> type[BookingBase]:
    model = BOOKING_MODELS.get(module)
    if model is None:
        raise ValidationError(f"Invalid module type: {module}")
    return model


class BookingService(TableService):

    def fetch_module(
        self,
        module: str,
        date_range: DateRange | None = None,
        status: str | None = None,
        payment_status: str | None = None,
        search: str | None = None,
        user_id: int | None = None,
    ) -> list[BookingBase]:
        model = check_module(module)
        stmt = select(model)
        if date_range is not None:
            stmt = stmt.where(model.created_at >= date_range.start, model.created_at <= date_range.end)
        if status:
            if status == "pending":
                stmt = stmt.where(or_(model.booking_status == status, model.booking_status.is_(None)))  # type: ignore
            else:
                stmt = stmt.where(model.booking_status == status)
        if payment_status:
            if payment_status == "pending":
                stmt = stmt.where(or_(model.payment_status == payment_status, model.payment_status.is_(None)))  # type: ignore
            else:
                stmt = stmt.where(model.payment_status == payment_status)
        if user_id is not None:
            stmt = stmt.where(model.user_id == user_id)
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(model.booking_reference).like(term),
                    func.lower(model.customer_name).like(term),
                    func.lower(model.customer_email).like(term),
                    func.lower(model.customer_phone).like(term),
                )
            )
        with self.backend_call(f"fetch {module} bookings"):
            return list(self.session.exec(stmt).all())

    def list_bookings(
        self,
        module: str | None = None,
        status: str | None = None,
        payment_status: str | None = None,
        date_range: DateRange | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        modules = [module] if module and module != "all" else list(BOOKING_MODELS)
        rows = []
        for mod in modules:
            for booking in self.fetch_module(mod, date_range, status, payment_status, search):
                rows.append((as_utc(booking.created_at), booking_row(mod, booking)))
        rows.sort(key=lambda item: item[0], reverse=True)

        page, limit = clamp_page(page, limit)
        start = (page - 1) * limit
        return page_payload([row for _, row in rows[start:start + limit]], len(rows), page, limit)

    def bookings_for_user(self, user_id: int) -> list[dict[str, Any]]:
        rows = []
        for mod in BOOKING_MODELS:
            for booking in self.fetch_module(mod, user_id=user_id):
                rows.append((as_utc(booking.created_at), booking_row(mod, booking)))
        rows.sort(key=lambda item: item[0], reverse=True)
        return [row for _, row in rows]

    def _get(self, module: str, booking_id: int) -> BookingBase:
        model = check_module(module)
        with self.backend_call("fetch booking"):
            booking = self.session.get(model, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def get_booking(self, module: str, booking_id: int) -> dict[str, Any]:
        return booking_row(module, self._get(module, booking_id))

    def update_status(self, module: str, booking_id: int, status: str) -> dict[str, Any]:
        check_module(module)
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}")
        booking = self._get(module, booking_id)
        booking.booking_status = status
        booking.updated_at = utcnow()
        self.save("update booking status", booking)
        logger.info(f"{module} booking {booking_id} status -> {status}")
        return booking_row(module, booking)

    def update_payment_status(self, module: str, booking_id: int, payment_status: str) -> dict[str, Any]:
        check_module(module)
        if module == "food":
            raise ValidationError("Payment status cannot be updated for food bookings")
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {payment_status}")
        booking = self._get(module, booking_id)
        booking.payment_status = payment_status
        booking.updated_at = utcnow()
        self.save("update payment status", booking)
        logger.info(f"{module} booking {booking_id} payment -> {payment_status}")
        return booking_row(module, booking)
