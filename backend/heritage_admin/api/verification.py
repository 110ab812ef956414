"""REST API for the verification queue."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.functions import FunctionsClient, get_functions_client
from heritage_admin.services.verification_service import ENTITY_KINDS, VerificationService

router = APIRouter(dependencies=[Depends(get_current_staff)])


class ApproveRequest(BaseModel):
    entity_type: str
    id: int


class RejectRequest(ApproveRequest):
    reason: str | None = None


@router.get("/entity-types")
async def entity_types():
    return list(ENTITY_KINDS)


@router.get("/")
async def list_records(
    entity_type: str | None = None,
    status: str | None = None,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    session: Session = Depends(get_session),
):
    return VerificationService(session).list_records(
        entity_type=entity_type, status=status, search=search, date_from=date_from, date_to=date_to
    )


@router.post("/approve")
async def approve(
    body: ApproveRequest,
    session: Session = Depends(get_session),
    functions: FunctionsClient = Depends(get_functions_client),
):
    return await VerificationService(session, functions=functions).approve(body.entity_type, body.id)


@router.post("/reject")
async def reject(
    body: RejectRequest,
    session: Session = Depends(get_session),
    functions: FunctionsClient = Depends(get_functions_client),
):
    return await VerificationService(session, functions=functions).reject(body.entity_type, body.id, body.reason)
