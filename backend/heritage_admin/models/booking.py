"""Booking tables, one per platform module."""

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class BookingBase(SQLModel):
    booking_id: Optional[int] = Field(default=None, primary_key=True)
    booking_reference: Optional[str] = Field(default=None, index=True)
    user_id: Optional[int] = Field(default=None, index=True)
    booking_status: Optional[str] = None  # pending | confirmed | completed | cancelled
    payment_status: Optional[str] = None  # pending | paid | refunded | failed
    total_amount: Optional[float] = None
    currency: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Optional[datetime] = None


class HotelBooking(BookingBase, table=True):
    __tablename__ = "heritage_hotelbooking"

    hotel_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    num_guests: Optional[int] = None
    num_rooms: Optional[int] = None
    room_type: Optional[str] = None


class TourBooking(BookingBase, table=True):
    __tablename__ = "heritage_tour_booking"

    tour_id: Optional[int] = None
    selected_date: Optional[date] = None
    num_travelers: Optional[int] = None


class EventBooking(BookingBase, table=True):
    __tablename__ = "heritage_eventbooking"

    event_id: Optional[int] = None
    event_date: Optional[date] = None
    num_tickets: Optional[int] = None


class FoodBooking(BookingBase, table=True):
    __tablename__ = "heritage_fv_foodbooking"

    restaurant_id: Optional[int] = None
    booking_date: Optional[date] = None
    num_guests: Optional[int] = None


class GuideBooking(BookingBase, table=True):
    __tablename__ = "heritage_guide_booking"

    guide_user_id: Optional[int] = None
    service_date: Optional[date] = None
    service_duration: Optional[int] = None  # hours


BOOKING_MODELS: dict[str, type[BookingBase]] = {
    "hotel": HotelBooking,
    "tour": TourBooking,
    "event": EventBooking,
    "food": FoodBooking,
    "guide": GuideBooking,
}

REFERENCE_PREFIXES = {
    "hotel": "HTL",
    "tour": "TOUR",
    "event": "EVT",
    "food": "FOOD",
    "guide": "GUIDE",
}
