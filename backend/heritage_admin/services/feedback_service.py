"""App feedback and complaints from end users."""

import logging
from typing import Any

from sqlalchemy import func
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.content import AppFeedback
from heritage_admin.models.user import HeritageUser
from heritage_admin.services.base import TableService
from heritage_admin.services.user_service import UserService
from heritage_admin.utils.dates import isoformat, utcnow
from heritage_admin.utils.pagination import clamp_page, page_payload

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    "uiux": "UI/UX",
    "bug": "Bug Report",
    "performance": "Performance",
    "other": "Other",
}
FEEDBACK_STATUSES = ("Open", "In Progress", "Resolved")
DEFAULT_STATUS = "Open"


def normalize_category(value: str | None) -> str:
    category = (value or "").strip().lower()
    return category if category in CATEGORY_LABELS else "other"


class FeedbackService(TableService):

    def list_feedback(
        self,
        category: str | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        page, limit = clamp_page(page, limit)
        stmt = select(AppFeedback, HeritageUser).join(
            HeritageUser, HeritageUser.user_id == AppFeedback.user_id, isouter=True  # type: ignore
        )
        if category:
            stmt = stmt.where(AppFeedback.category == category)
        if status:
            stmt = stmt.where(AppFeedback.status == status)

        with self.backend_call("fetch feedback"):
            total = self.session.exec(select(func.count()).select_from(stmt.subquery())).one()
            rows = self.session.exec(
                stmt.order_by(AppFeedback.created_at.desc(), AppFeedback.id.desc())  # type: ignore
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()

        users = UserService(self.session)
        names = users.type_names()
        data = []
        for fb, user in rows:
            data.append(
                {
                    "feedback_id": fb.id,
                    "user_id": fb.user_id,
                    "user_name": (user.full_name if user else None) or "—",
                    "user_type_name": users.type_name(names, user.user_type_id) if user else "—",
                    "type": normalize_category(fb.category),
                    "type_label": CATEGORY_LABELS[normalize_category(fb.category)],
                    "comments": fb.comment or "",
                    "status": fb.status or DEFAULT_STATUS,
                    "created_at": isoformat(fb.created_at),
                }
            )
        return page_payload(data, total, page, limit)

    def update_status(self, feedback_id: int, status: str) -> dict[str, Any]:
        if status not in FEEDBACK_STATUSES:
            raise ValidationError(f"Invalid feedback status: {status}")
        with self.backend_call("fetch feedback"):
            fb = self.session.get(AppFeedback, feedback_id)
        if fb is None:
            raise NotFoundError("Feedback not found")
        fb.status = status
        fb.updated_at = utcnow()
        self.save("update feedback status", fb)
        return {"feedback_id": fb.id, "status": fb.status, "updated_at": isoformat(fb.updated_at)}
