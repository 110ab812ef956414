"""Marketing campaigns and mail messages."""

import logging
from typing import Any

from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.core.security import StaffContext
from heritage_admin.models.content import MarketingCampaign, MarketingMail
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import format_day

logger = logging.getLogger(__name__)

CAMPAIGN_STATUSES = ("Draft", "Active", "Paused", "Completed")
MAIL_STATUSES = ("Draft", "Scheduled", "Sent")
MAIL_TYPES = ("Event", "Offer", "Announcement")

CAMPAIGN_FIELDS = ("name", "description", "audience", "start_date", "end_date", "status")
MAIL_FIELDS = ("title", "body", "audience", "mail_date", "status", "type")


def campaign_row(c: MarketingCampaign) -> dict[str, Any]:
    return {
        "id": c.campaign_id,
        "name": c.name,
        "description": c.description,
        "audience": c.audience,
        "start_date": format_day(c.start_date),
        "end_date": format_day(c.end_date),
        "status": c.status or "Draft",
        "created_on": format_day(c.created_at),
        "created_by": c.created_by or "System",
    }


def mail_row(m: MarketingMail) -> dict[str, Any]:
    return {
        "id": m.mail_id,
        "title": m.title,
        "body": m.body,
        "audience": m.audience,
        "date": format_day(m.mail_date),
        "status": m.status or "Draft",
        "type": m.type or "Announcement",
        "created_on": format_day(m.created_at),
        "created_by": m.created_by or "System",
    }


def _check_fields(values: dict[str, Any], allowed: tuple[str, ...]) -> None:
    unknown = set(values) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")


class MarketingService(TableService):

    # --- Campaigns ---

    def _validate_campaign(self, c: MarketingCampaign) -> None:
        if not (c.name or "").strip():
            raise ValidationError("Campaign name is required")
        if c.status not in CAMPAIGN_STATUSES:
            raise ValidationError(f"Invalid campaign status: {c.status}")
        if c.start_date and c.end_date and c.end_date < c.start_date:
            raise ValidationError("End date cannot be before start date")

    def list_campaigns(self) -> list[dict[str, Any]]:
        with self.backend_call("fetch campaigns"):
            rows = self.session.exec(
                select(MarketingCampaign).order_by(MarketingCampaign.created_at.desc())  # type: ignore
            ).all()
        return [campaign_row(c) for c in rows]

    def _campaign(self, campaign_id: int) -> MarketingCampaign:
        with self.backend_call("fetch campaign"):
            c = self.session.get(MarketingCampaign, campaign_id)
        if c is None:
            raise NotFoundError("Campaign not found")
        return c

    def get_campaign(self, campaign_id: int) -> dict[str, Any]:
        return campaign_row(self._campaign(campaign_id))

    def create_campaign(self, staff: StaffContext, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values, CAMPAIGN_FIELDS)
        c = MarketingCampaign(**values, created_by=staff.display_name)
        self._validate_campaign(c)
        self.save("create campaign", c)
        logger.info(f"Campaign {c.campaign_id} created by {staff.display_name}")
        return campaign_row(c)

    def update_campaign(self, campaign_id: int, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values, CAMPAIGN_FIELDS)
        c = self._campaign(campaign_id)
        for field, value in values.items():
            setattr(c, field, value)
        self._validate_campaign(c)
        self.save("update campaign", c)
        return campaign_row(c)

    def delete_campaign(self, campaign_id: int) -> None:
        c = self._campaign(campaign_id)
        with self.backend_call("delete campaign"):
            self.session.delete(c)
            self.session.commit()

    # --- Mail messages ---

    def _validate_mail(self, m: MarketingMail) -> None:
        if not (m.title or "").strip():
            raise ValidationError("Mail title is required")
        if m.status not in MAIL_STATUSES:
            raise ValidationError(f"Invalid mail status: {m.status}")
        if m.type not in MAIL_TYPES:
            raise ValidationError(f"Invalid mail type: {m.type}")

    def list_mail(self) -> list[dict[str, Any]]:
        with self.backend_call("fetch mail messages"):
            rows = self.session.exec(
                select(MarketingMail).order_by(MarketingMail.created_at.desc())  # type: ignore
            ).all()
        return [mail_row(m) for m in rows]

    def _mail(self, mail_id: int) -> MarketingMail:
        with self.backend_call("fetch mail message"):
            m = self.session.get(MarketingMail, mail_id)
        if m is None:
            raise NotFoundError("Mail message not found")
        return m

    def get_mail(self, mail_id: int) -> dict[str, Any]:
        return mail_row(self._mail(mail_id))

    def create_mail(self, staff: StaffContext, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values, MAIL_FIELDS)
        m = MarketingMail(**values, created_by=staff.display_name)
        self._validate_mail(m)
        self.save("create mail message", m)
        return mail_row(m)

    def update_mail(self, mail_id: int, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values, MAIL_FIELDS)
        m = self._mail(mail_id)
        for field, value in values.items():
            setattr(m, field, value)
        self._validate_mail(m)
        self.save("update mail message", m)
        return mail_row(m)

    def delete_mail(self, mail_id: int) -> None:
        m = self._mail(mail_id)
        with self.backend_call("delete mail message"):
            self.session.delete(m)
            self.session.commit()
