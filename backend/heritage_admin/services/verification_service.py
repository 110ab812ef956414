"""Staff verification of heritage sites, vendor listings and vendor-type accounts.

Each entity type lives in its own table with its own notion of "verified"
(a boolean flag or a publishing status). Approving or rejecting writes that
column and then emails the owner through the notification templates
`verification_approved` and `verification_rejected`.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlmodel import SQLModel, select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.listing import HeritageArtisan, HeritageFood, HeritageHotel, HeritageSite
from heritage_admin.models.user import HeritageUser, UserType
from heritage_admin.services.base import TableService
from heritage_admin.services.functions import FunctionsClient
from heritage_admin.services.notification_service import NotificationService
from heritage_admin.utils.dates import format_day, utcnow

logger = logging.getLogger(__name__)

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"
STATUSES = (PENDING, APPROVED, REJECTED)

APPROVED_TEMPLATE = "verification_approved"
REJECTED_TEMPLATE = "verification_rejected"


@dataclass(frozen=True)
class EntityKind:
    label: str
    model: type[SQLModel]
    id_field: str
    name_field: str
    subtitle_fields: tuple[str, ...]
    status_field: str
    approve_value: Any
    reject_value: Any
    default_subtitle: str
    user_type_key: str | None = None  # heritage_user rows of this user type


ENTITY_KINDS: dict[str, EntityKind] = {
    kind.label: kind
    for kind in (
        EntityKind(
            "Heritage Site", HeritageSite, "site_id", "name_default",
            ("short_desc_default", "meta_description_def"), "is_active", True, False, "",
        ),
        EntityKind(
            "Local Guide", HeritageUser, "user_id", "full_name",
            (), "user_type_verified", True, False, "Local Guide", user_type_key="local_guide",
        ),
        EntityKind(
            "Hotel", HeritageHotel, "hotel_id", "hotel_name",
            ("subtitle",), "status", "published", "draft", "Hotel",
        ),
        EntityKind(
            "Event Operator", HeritageUser, "user_id", "full_name",
            (), "user_type_verified", True, False, "Event Operator", user_type_key="event_operator",
        ),
        EntityKind(
            "Tour Operator", HeritageUser, "user_id", "full_name",
            (), "user_type_verified", True, False, "Tour Operator", user_type_key="tour_operator",
        ),
        EntityKind(
            "Food Vendor", HeritageFood, "food_id", "food_name",
            ("subtitle",), "status", "published", "pending", "Food Vendor",
        ),
        EntityKind(
            "Artisan", HeritageArtisan, "artisan_id", "artisan_name",
            ("short_bio", "craft_type"), "is_verified", True, False, "Artisan",
        ),
    )
}


def map_status(value: Any) -> str:
    """Collapse a table's verification column into Pending / Approved / Rejected."""
    if isinstance(value, bool):
        return APPROVED if value else PENDING
    text = (value or "").lower()
    if text in ("approved", "active", "published"):
        return APPROVED
    if text in ("rejected", "cancelled", "archived"):
        return REJECTED
    return PENDING


def get_kind(entity_type: str) -> EntityKind:
    kind = ENTITY_KINDS.get(entity_type)
    if kind is None:
        raise ValidationError(f"Unknown entity type: {entity_type}")
    return kind


def record_row(kind: EntityKind, row: SQLModel) -> dict[str, Any]:
    subtitle = next((getattr(row, f) for f in kind.subtitle_fields if getattr(row, f)), None)
    return {
        "id": getattr(row, kind.id_field),
        "name": getattr(row, kind.name_field) or f"Unnamed {kind.label}",
        "subtitle": subtitle or kind.default_subtitle,
        "entity_type": kind.label,
        "status": map_status(getattr(row, kind.status_field)),
        "submitted_on": format_day(getattr(row, "created_at", None)),
    }


class VerificationService(TableService):

    def __init__(self, session, hub=None, functions: FunctionsClient | None = None) -> None:
        super().__init__(session, hub)
        self.notifications = NotificationService(session, hub, functions)

    def _select(self, kind: EntityKind):
        stmt = select(kind.model)
        if kind.user_type_key:
            stmt = stmt.join(UserType, UserType.user_type_id == HeritageUser.user_type_id).where(  # type: ignore
                UserType.type_key == kind.user_type_key
            )
        return stmt

    def list_records(
        self,
        entity_type: str | None = None,
        status: str | None = None,
        search: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[dict[str, Any]]:
        """Verification queue across every entity table, newest submission first."""
        if entity_type and entity_type != "All":
            kinds = [get_kind(entity_type)]
        else:
            kinds = list(ENTITY_KINDS.values())
        if status and status != "All" and status not in STATUSES:
            raise ValidationError(f"Invalid verification status: {status}")

        records = []
        for kind in kinds:
            with self.backend_call(f"fetch {kind.label.lower()} records"):
                rows = self.session.exec(self._select(kind)).all()
            records.extend(record_row(kind, row) for row in rows)

        if status and status != "All":
            records = [r for r in records if r["status"] == status]
        if search and search.strip():
            needle = search.strip().lower()
            records = [
                r for r in records
                if needle in r["name"].lower() or needle in r["subtitle"].lower() or needle in r["entity_type"].lower()
            ]
        if date_from:
            records = [r for r in records if r["submitted_on"] and r["submitted_on"] >= date_from.isoformat()]
        if date_to:
            records = [r for r in records if r["submitted_on"] and r["submitted_on"] <= date_to.isoformat()]

        records.sort(key=lambda r: r["submitted_on"], reverse=True)
        return records

    def _get(self, kind: EntityKind, entity_id: int) -> SQLModel:
        with self.backend_call(f"fetch {kind.label.lower()}"):
            row = self.session.exec(
                self._select(kind).where(getattr(kind.model, kind.id_field) == entity_id)
            ).first()
        if row is None:
            raise NotFoundError(f"{kind.label} not found")
        return row

    def _owner(self, kind: EntityKind, row: SQLModel) -> HeritageUser | None:
        if isinstance(row, HeritageUser):
            return row
        user_id = getattr(row, "user_id", None)
        if user_id is None:
            return None
        with self.backend_call("fetch listing owner"):
            return self.session.get(HeritageUser, user_id)

    async def _notify(
        self, kind: EntityKind, row: SQLModel, template_key: str, context: dict[str, Any]
    ) -> dict[str, Any] | None:
        owner = self._owner(kind, row)
        if owner is None or not owner.email:
            logger.info(f"No email on file for {kind.label} {getattr(row, kind.id_field)}, verification notice not sent")
            return None
        context = {"userName": owner.full_name or owner.email, "entityType": kind.label, **context}
        result = await self.notifications.send_template_email(template_key, owner.email, context, user_id=owner.user_id)
        return {"sent": result.success, "error": result.error}

    def _set_status(self, kind: EntityKind, row: SQLModel, value: Any, action: str) -> None:
        setattr(row, kind.status_field, value)
        if hasattr(row, "updated_at"):
            row.updated_at = utcnow()  # type: ignore
        self.save(f"{action} {kind.label.lower()}", row)

    async def approve(self, entity_type: str, entity_id: int) -> dict[str, Any]:
        kind = get_kind(entity_type)
        row = self._get(kind, entity_id)
        self._set_status(kind, row, kind.approve_value, "approve")
        logger.info(f"Approved {kind.label} {entity_id}")

        notification = await self._notify(
            kind, row, APPROVED_TEMPLATE, {"verificationDate": format_day(utcnow())}
        )
        return {**record_row(kind, row), "notification": notification}

    async def reject(self, entity_type: str, entity_id: int, reason: str | None) -> dict[str, Any]:
        """Send the entity back for changes. The reason goes into the notice to its owner."""
        kind = get_kind(entity_type)
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")
        row = self._get(kind, entity_id)
        self._set_status(kind, row, kind.reject_value, "reject")
        logger.info(f"Rejected {kind.label} {entity_id}: {reason.strip()}")

        notification = await self._notify(
            kind,
            row,
            REJECTED_TEMPLATE,
            {"rejectionDate": format_day(utcnow()), "rejectionReason": reason.strip()},
        )
        return {**record_row(kind, row), "notification": notification}
