"""Staff sign-in and password management."""

import logging

from sqlalchemy import func, or_
from sqlmodel import select

from heritage_admin.core.config import settings
from heritage_admin.core.errors import AuthenticationError, NotFoundError, ValidationError
from heritage_admin.core.security import (
    StaffContext,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from heritage_admin.models.user import HeritageUser, UserType
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService(TableService):

    def _find(self, identifier: str) -> tuple[HeritageUser, UserType | None] | None:
        ident = identifier.strip()
        with self.backend_call("look up user"):
            return self.session.exec(
                select(HeritageUser, UserType)
                .join(UserType, UserType.user_type_id == HeritageUser.user_type_id, isouter=True)  # type: ignore
                .where(or_(func.lower(HeritageUser.email) == ident.lower(), HeritageUser.phone == ident))
            ).first()

    def authenticate(self, identifier: str, password: str) -> tuple[HeritageUser, StaffContext]:
        """Check email-or-phone and password of a staff member."""
        if not identifier or not identifier.strip() or not password:
            raise ValidationError("Email or phone and password are required")

        found = self._find(identifier)
        if found is None:
            logger.info(f"Login failed: no user for {identifier!r}")
            raise AuthenticationError("Invalid credentials")
        user, user_type = found

        if user.password_hash and not user.password_hash.startswith("$2"):
            logger.warning(f"User {user.user_id} has a legacy password hash and needs a password reset")
        if not verify_password(password, user.password_hash):
            logger.info(f"Login failed: wrong password for user {user.user_id}")
            raise AuthenticationError("Invalid credentials")

        role = user_type.type_key if user_type else ""
        if role not in settings.staff_type_keys:
            logger.warning(f"Login refused for user {user.user_id}: type {role!r} is not staff")
            raise AuthenticationError("Access denied. Staff accounts only.")

        return user, StaffContext(
            user_id=user.user_id,  # type: ignore
            full_name=user.full_name or "",
            email=user.email or "",
            role=role,
        )

    def issue_token(self, staff: StaffContext) -> dict:
        token, expires_in = create_access_token(staff)
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "user": {
                "user_id": staff.user_id,
                "full_name": staff.full_name,
                "email": staff.email,
                "role": staff.role,
            },
        }

    def login(self, identifier: str, password: str) -> dict:
        _, staff = self.authenticate(identifier, password)
        logger.info(f"Staff {staff.user_id} signed in")
        return self.issue_token(staff)

    @staticmethod
    def decode_token(token: str) -> StaffContext:
        return decode_access_token(token)

    def change_password(self, staff: StaffContext, current: str, new: str, confirm: str) -> None:
        if new != confirm:
            raise ValidationError("New passwords do not match")
        if len(new) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        with self.backend_call("load user"):
            user = self.session.get(HeritageUser, staff.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(current, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = hash_password(new)
        user.updated_at = utcnow()
        self.save("change password", user)
        logger.info(f"Password changed for staff {staff.user_id}")
