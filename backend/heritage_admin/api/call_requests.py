"""REST API for call-back support requests."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import StaffContext, get_current_staff
from heritage_admin.services.call_request_service import CallRequestService
from heritage_admin.utils.dates import optional_date_range

router = APIRouter(dependencies=[Depends(get_current_staff)])


class RequestStatusUpdate(BaseModel):
    status: str
    notes: str | None = None


class CallRecord(BaseModel):
    duration_seconds: int | None = None


class CloseRequest(BaseModel):
    notes: str | None = None


@router.get("/")
async def list_requests(
    status: str | None = None,
    search: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    user_type_id: int | None = None,
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
):
    return CallRequestService(session).list_requests(
        status=status,
        search=search,
        date_range=optional_date_range(start_date, end_date),
        user_type_id=user_type_id,
        page=page,
        limit=limit,
    )


@router.get("/{request_id}")
async def get_request(request_id: int, session: Session = Depends(get_session)):
    return CallRequestService(session).get_request(request_id)


@router.patch("/{request_id}/status")
async def update_status(
    request_id: int,
    body: RequestStatusUpdate,
    staff: StaffContext = Depends(get_current_staff),
    session: Session = Depends(get_session),
):
    return CallRequestService(session).update_status(request_id, body.status, body.notes, staff)


@router.post("/{request_id}/call")
async def record_call(request_id: int, body: CallRecord, session: Session = Depends(get_session)):
    return CallRequestService(session).record_call(request_id, body.duration_seconds)


@router.post("/{request_id}/close")
async def close_request(request_id: int, body: CloseRequest, session: Session = Depends(get_session)):
    return CallRequestService(session).close_request(request_id, body.notes)
