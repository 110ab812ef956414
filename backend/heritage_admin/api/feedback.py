"""REST API for app feedback."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.feedback_service import FeedbackService

router = APIRouter(dependencies=[Depends(get_current_staff)])


class FeedbackStatusUpdate(BaseModel):
    status: str


@router.get("/")
async def list_feedback(
    type: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
):
    return FeedbackService(session).list_feedback(category=type, status=status, page=page, limit=limit)


@router.patch("/{feedback_id}/status")
async def update_status(feedback_id: int, body: FeedbackStatusUpdate, session: Session = Depends(get_session)):
    return FeedbackService(session).update_status(feedback_id, body.status)
