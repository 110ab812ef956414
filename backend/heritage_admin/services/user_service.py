"""End-user and staff records."""

import logging
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.user import HeritageUser, UserProfile, UserType, UserTypeTranslation
from heritage_admin.services.base import TableService
from heritage_admin.services.booking_service import BookingService
from heritage_admin.utils.dates import DateRange, as_utc, isoformat, utcnow
from heritage_admin.utils.pagination import clamp_page, page_payload

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("full_name", "email", "phone", "user_type_id", "is_verified", "language_code")


class UserService(TableService):

    def type_names(self) -> dict[int, str]:
        """user_type_id -> display name: EN translation, then type key, then 'Type <id>'."""
        with self.backend_call("fetch user types"):
            types = self.session.exec(select(UserType)).all()
            translations = self.session.exec(
                select(UserTypeTranslation).where(func.upper(UserTypeTranslation.language_code) == "EN")
            ).all()
        english = {t.user_type_id: t.type_name for t in translations if t.type_name}
        return {
            t.user_type_id: english.get(t.user_type_id) or t.type_key or f"Type {t.user_type_id}"  # type: ignore
            for t in types
        }

    @staticmethod
    def type_name(names: dict[int, str], user_type_id: int | None) -> str:
        if user_type_id is None:
            return "Unknown"
        return names.get(user_type_id) or f"Type {user_type_id}"

    def _row(self, user: HeritageUser, names: dict[int, str]) -> dict[str, Any]:
        return {
            "user_id": user.user_id,
            "full_name": user.full_name or "",
            "email": user.email or "",
            "phone": user.phone or "",
            "user_type_id": user.user_type_id,
            "user_type": self.type_name(names, user.user_type_id),
            "is_verified": user.is_verified,
            "language_code": user.language_code,
            "created_at": isoformat(user.created_at),
            "updated_at": isoformat(user.updated_at),
        }

    def list_user_types(self) -> list[dict[str, Any]]:
        names = self.type_names()
        with self.backend_call("fetch user types"):
            types = self.session.exec(
                select(UserType).where(UserType.is_active == True).order_by(UserType.display_order)  # type: ignore  # noqa: E712
            ).all()
        return [
            {"user_type_id": t.user_type_id, "type_key": t.type_key, "name": self.type_name(names, t.user_type_id)}
            for t in types
        ]

    def list_users(
        self,
        user_type_id: int | None = None,
        is_verified: bool | None = None,
        date_range: DateRange | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        stmt = select(HeritageUser)
        if user_type_id is not None:
            stmt = stmt.where(HeritageUser.user_type_id == user_type_id)
        if is_verified is not None:
            stmt = stmt.where(HeritageUser.is_verified == is_verified)
        if date_range is not None:
            stmt = stmt.where(HeritageUser.created_at >= date_range.start, HeritageUser.created_at <= date_range.end)
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(HeritageUser.full_name).like(term),
                    func.lower(HeritageUser.email).like(term),
                    HeritageUser.phone.like(term),  # type: ignore
                )
            )

        page, limit = clamp_page(page, limit)
        with self.backend_call("fetch users"):
            total = self.session.exec(select(func.count()).select_from(stmt.subquery())).one()
            users = self.session.exec(
                stmt.order_by(HeritageUser.created_at.desc(), HeritageUser.user_id.desc())  # type: ignore
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
        names = self.type_names()
        return page_payload([self._row(u, names) for u in users], total, page, limit)

    def _get(self, user_id: int) -> HeritageUser:
        with self.backend_call("fetch user"):
            user = self.session.get(HeritageUser, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_user_details(self, user_id: int) -> dict[str, Any]:
        user = self._get(user_id)
        with self.backend_call("fetch user profile"):
            profile = self.session.exec(select(UserProfile).where(UserProfile.user_id == user_id)).first()
        row = self._row(user, self.type_names())
        row["profile"] = {
            "avatar_url": profile.avatar_url if profile else None,
            "tags": list(profile.tags or []) if profile else [],
            "is_facebook_connected": bool(profile and profile.is_facebook_connected),
            "is_instagram_connected": bool(profile and profile.is_instagram_connected),
            "is_twitter_connected": bool(profile and profile.is_twitter_connected),
        }
        return row

    def get_user_bookings(self, user_id: int) -> list[dict[str, Any]]:
        self._get(user_id)
        return BookingService(self.session, self.hub).bookings_for_user(user_id)

    def update_user(self, user_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "email" in updates and updates["email"] is not None and "@" not in updates["email"]:
            raise ValidationError("Invalid email address")

        user = self._get(user_id)
        if "user_type_id" in updates and updates["user_type_id"] is not None:
            if self.session.get(UserType, updates["user_type_id"]) is None:
                raise ValidationError("Unknown user type")
        for field, value in updates.items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        self.save("update user", user)
        logger.info(f"Updated user {user_id}: {sorted(updates)}")
        return self._row(user, self.type_names())

    def set_verified(self, user_id: int, verified: bool) -> dict[str, Any]:
        return self.update_user(user_id, {"is_verified": verified})

    def delete_user(self, user_id: int) -> None:
        user = self._get(user_id)
        with self.backend_call("delete user"):
            for profile in self.session.exec(select(UserProfile).where(UserProfile.user_id == user_id)).all():
                self.session.delete(profile)
            self.session.delete(user)
            self.session.commit()
        logger.info(f"Deleted user {user_id}")

    def registrations(self, date_range: DateRange) -> list[HeritageUser]:
        with self.backend_call("fetch users"):
            users = self.session.exec(
                select(HeritageUser).where(
                    HeritageUser.created_at >= date_range.start, HeritageUser.created_at <= date_range.end
                )
            ).all()
        return sorted(users, key=lambda u: as_utc(u.created_at))
