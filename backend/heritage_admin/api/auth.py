"""Staff sign-in and session endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import StaffContext, get_current_staff
from heritage_admin.services.auth_service import AuthService

router = APIRouter()


class LoginRequest(BaseModel):
    identifier: str  # email or phone
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


@router.post("/login")
async def login(body: LoginRequest, session: Session = Depends(get_session)):
    return AuthService(session).login(body.identifier, body.password)


@router.get("/me")
async def me(staff: StaffContext = Depends(get_current_staff)):
    return {
        "user_id": staff.user_id,
        "full_name": staff.full_name,
        "email": staff.email,
        "role": staff.role,
    }


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    staff: StaffContext = Depends(get_current_staff),
    session: Session = Depends(get_session),
):
    AuthService(session).change_password(staff, body.current_password, body.new_password, body.confirm_password)
    return {"status": "ok"}


@router.post("/logout")
async def logout(staff: StaffContext = Depends(get_current_staff)):
    # tokens are stateless; the console drops its copy
    return {"status": "ok"}
