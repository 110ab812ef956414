"""Staff authentication: bcrypt password hashes and JWT access tokens."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from heritage_admin.core.config import settings
from heritage_admin.core.database import get_session
from heritage_admin.models.user import HeritageUser

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

TOKEN_TYPE = "staff_access"


@dataclass(frozen=True)
class StaffContext:
    """The signed-in staff member, passed explicitly to services that attribute actions."""

    user_id: int
    full_name: str
    email: str
    role: str

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Admin"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify against a bcrypt hash. Any other hash format never authenticates."""
    if not hashed_password or not hashed_password.startswith(("$2a$", "$2b$", "$2y$")):
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(staff: StaffContext) -> tuple[str, int]:
    """Return (token, expires_in_seconds)."""
    expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(staff.user_id),
        "name": staff.full_name,
        "email": staff.email,
        "role": staff.role,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": now + expires_delta,
    }
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, int(expires_delta.total_seconds())


def decode_access_token(token: str) -> StaffContext:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("type") != TOKEN_TYPE or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    return StaffContext(
        user_id=int(payload["sub"]),
        full_name=payload.get("name") or "",
        email=payload.get("email") or "",
        role=payload.get("role") or "",
    )


def resolve_staff(token: str, session: Session) -> StaffContext:
    """Decode a token and check the staff row still exists."""
    staff = decode_access_token(token)
    if session.get(HeritageUser, staff.user_id) is None:
        logger.warning(f"Token for missing user {staff.user_id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return staff


async def get_current_staff(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    session: Annotated[Session, Depends(get_session)],
) -> StaffContext:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return resolve_staff(credentials.credentials, session)
