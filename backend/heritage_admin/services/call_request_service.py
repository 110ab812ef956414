"""Call-back requests raised from the mobile app's support screen."""

import logging
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.core.security import StaffContext
from heritage_admin.models.content import CallSupportRequest
from heritage_admin.models.user import HeritageUser
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import DateRange, isoformat, utcnow
from heritage_admin.utils.pagination import clamp_page, page_payload

logger = logging.getLogger(__name__)

REQUEST_STATUSES = ("pending", "in_progress", "closed")


def request_row(r: CallSupportRequest) -> dict[str, Any]:
    return {
        "request_id": r.request_id,
        "user_id": r.user_id,
        "phone_number": r.phone_number,
        "country_code": r.country_code,
        "full_phone_number": r.full_phone_number or f"{r.country_code}{r.phone_number}",
        "user_name": r.user_name,
        "user_email": r.user_email,
        "preferred_language": r.preferred_language,
        "request_status": r.request_status,
        "support_notes": r.support_notes,
        "assigned_to": r.assigned_to,
        "called_at": isoformat(r.called_at),
        "call_duration_seconds": r.call_duration_seconds,
        "created_at": isoformat(r.created_at),
        "updated_at": isoformat(r.updated_at),
        "completed_at": isoformat(r.completed_at),
    }


class CallRequestService(TableService):

    def list_requests(
        self,
        status: str | None = None,
        search: str | None = None,
        date_range: DateRange | None = None,
        user_type_id: int | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        page, limit = clamp_page(page, limit)
        stmt = select(CallSupportRequest)
        if user_type_id is not None:
            user_ids = select(HeritageUser.user_id).where(HeritageUser.user_type_id == user_type_id)
            stmt = stmt.where(CallSupportRequest.user_id.in_(user_ids))  # type: ignore
        if status:
            stmt = stmt.where(CallSupportRequest.request_status == status)
        if date_range is not None:
            stmt = stmt.where(
                CallSupportRequest.created_at >= date_range.start, CallSupportRequest.created_at <= date_range.end
            )
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(CallSupportRequest.phone_number).like(term),
                    func.lower(CallSupportRequest.full_phone_number).like(term),
                    func.lower(CallSupportRequest.user_name).like(term),
                    func.lower(CallSupportRequest.user_email).like(term),
                )
            )

        with self.backend_call("fetch call requests"):
            total = self.session.exec(select(func.count()).select_from(stmt.subquery())).one()
            rows = self.session.exec(
                stmt.order_by(CallSupportRequest.created_at.desc(), CallSupportRequest.request_id.desc())  # type: ignore
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
        return page_payload([request_row(r) for r in rows], total, page, limit)

    def _get(self, request_id: int) -> CallSupportRequest:
        with self.backend_call("fetch call request"):
            r = self.session.get(CallSupportRequest, request_id)
        if r is None:
            raise NotFoundError("Call request not found")
        return r

    def get_request(self, request_id: int) -> dict[str, Any]:
        return request_row(self._get(request_id))

    def update_status(
        self, request_id: int, status: str, notes: str | None = None, staff: StaffContext | None = None
    ) -> dict[str, Any]:
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"Invalid request status: {status}")
        r = self._get(request_id)
        now = utcnow()
        r.request_status = status
        r.updated_at = now
        if status == "closed" and not notes:
            r.completed_at = now
        if notes:
            r.support_notes = notes
        if staff is not None and r.assigned_to is None:
            r.assigned_to = staff.user_id
        self.save("update call request", r)
        logger.info(f"Call request {request_id} -> {status}")
        return request_row(r)

    def record_call(self, request_id: int, duration_seconds: int | None = None) -> dict[str, Any]:
        if duration_seconds is not None and duration_seconds < 0:
            raise ValidationError("Call duration cannot be negative")
        r = self._get(request_id)
        now = utcnow()
        r.called_at = now
        r.updated_at = now
        if duration_seconds is not None:
            r.call_duration_seconds = duration_seconds
        self.save("record call", r)
        return request_row(r)

    def close_request(self, request_id: int, notes: str | None = None) -> dict[str, Any]:
        r = self._get(request_id)
        now = utcnow()
        r.request_status = "closed"
        r.completed_at = now
        r.updated_at = now
        if notes:
            r.support_notes = notes
        self.save("close call request", r)
        return request_row(r)

    def count_pending(self) -> int:
        with self.backend_call("count call requests"):
            return self.session.exec(
                select(func.count())
                .select_from(CallSupportRequest)
                .where(CallSupportRequest.request_status == "pending")
            ).one()
