"""REST API for platform users."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.user_service import UserService
from heritage_admin.utils.dates import optional_date_range

router = APIRouter(dependencies=[Depends(get_current_staff)])


class UserUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    user_type_id: int | None = None
    is_verified: bool | None = None
    language_code: str | None = None


class VerifyRequest(BaseModel):
    is_verified: bool


@router.get("/")
async def list_users(
    user_type_id: int | None = None,
    is_verified: bool | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
):
    return UserService(session).list_users(
        user_type_id=user_type_id,
        is_verified=is_verified,
        date_range=optional_date_range(start_date, end_date),
        search=search,
        page=page,
        limit=limit,
    )


@router.get("/types")
async def list_user_types(session: Session = Depends(get_session)):
    return UserService(session).list_user_types()


@router.get("/{user_id}")
async def get_user(user_id: int, session: Session = Depends(get_session)):
    return UserService(session).get_user_details(user_id)


@router.get("/{user_id}/bookings")
async def get_user_bookings(user_id: int, session: Session = Depends(get_session)):
    return UserService(session).get_user_bookings(user_id)


@router.patch("/{user_id}")
async def update_user(user_id: int, body: UserUpdate, session: Session = Depends(get_session)):
    return UserService(session).update_user(user_id, body.model_dump(exclude_unset=True))


@router.post("/{user_id}/verify")
async def set_verified(user_id: int, body: VerifyRequest, session: Session = Depends(get_session)):
    return UserService(session).set_verified(user_id, body.is_verified)


@router.delete("/{user_id}")
async def delete_user(user_id: int, session: Session = Depends(get_session)):
    UserService(session).delete_user(user_id)
    return {"status": "deleted"}
