"""REST API for bookings across modules."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.booking_service import BookingService
from heritage_admin.utils.dates import optional_date_range

router = APIRouter(dependencies=[Depends(get_current_staff)])


class StatusUpdate(BaseModel):
    status: str


@router.get("/")
async def list_bookings(
    module: str | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
):
    return BookingService(session).list_bookings(
        module=module,
        status=status,
        payment_status=payment_status,
        date_range=optional_date_range(start_date, end_date),
        search=search,
        page=page,
        limit=limit,
    )


@router.get("/{module}/{booking_id}")
async def get_booking(module: str, booking_id: int, session: Session = Depends(get_session)):
    return BookingService(session).get_booking(module, booking_id)


@router.patch("/{module}/{booking_id}/status")
async def update_status(module: str, booking_id: int, body: StatusUpdate, session: Session = Depends(get_session)):
    return BookingService(session).update_status(module, booking_id, body.status)


@router.patch("/{module}/{booking_id}/payment-status")
async def update_payment_status(
    module: str, booking_id: int, body: StatusUpdate, session: Session = Depends(get_session)
):
    return BookingService(session).update_payment_status(module, booking_id, body.status)
