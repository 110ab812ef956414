"""Notification templates, template rendering and the delivery log."""

import logging
import re
from typing import Any

from sqlalchemy import func
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.notification import NotificationLog, NotificationTemplate
from heritage_admin.services.base import TableService
from heritage_admin.services.functions import DeliveryResult, FunctionsClient
from heritage_admin.utils.dates import isoformat, utcnow
from heritage_admin.utils.pagination import clamp_page, page_payload

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

TEMPLATE_FIELDS = (
    "template_key",
    "template_name",
    "email_subject",
    "email_body_html",
    "email_body_text",
    "sms_body",
    "push_title",
    "push_body",
    "push_image_url",
    "push_action_url",
    "is_critical",
    "is_active",
)


def render(text: str | None, context: dict[str, Any]) -> str:
    """Substitute {{key}} placeholders. Unknown keys are left untouched."""
    if not text:
        return ""

    def sub(match: re.Match) -> str:
        key = match.group(1)
        return str(context[key]) if key in context and context[key] is not None else match.group(0)

    return _PLACEHOLDER_RE.sub(sub, text)


def template_row(t: NotificationTemplate) -> dict[str, Any]:
    row = {field: getattr(t, field) for field in TEMPLATE_FIELDS}
    row["id"] = t.id
    row["created_at"] = isoformat(t.created_at)
    row["updated_at"] = isoformat(t.updated_at)
    return row


def log_row(entry: NotificationLog) -> dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "notification_type": entry.notification_type,
        "channel": entry.channel,
        "recipient": entry.recipient,
        "subject": entry.subject,
        "template": entry.template,
        "status": entry.status,
        "skip_reason": entry.skip_reason,
        "provider": entry.provider,
        "provider_message_id": entry.provider_message_id,
        "created_at": isoformat(entry.created_at),
        "sent_at": isoformat(entry.sent_at),
    }


class NotificationService(TableService):

    def __init__(self, session, hub=None, functions: FunctionsClient | None = None) -> None:
        super().__init__(session, hub)
        self.functions = functions

    # --- Templates ---

    def list_templates(self) -> list[dict[str, Any]]:
        with self.backend_call("fetch templates"):
            rows = self.session.exec(
                select(NotificationTemplate).order_by(NotificationTemplate.template_name)
            ).all()
        return [template_row(t) for t in rows]

    def _get(self, template_id: int) -> NotificationTemplate:
        with self.backend_call("fetch template"):
            t = self.session.get(NotificationTemplate, template_id)
        if t is None:
            raise NotFoundError("Template not found")
        return t

    def get_template(self, template_id: int) -> dict[str, Any]:
        return template_row(self._get(template_id))

    def find_template(self, template_key: str) -> NotificationTemplate | None:
        with self.backend_call("fetch template"):
            return self.session.exec(
                select(NotificationTemplate).where(NotificationTemplate.template_key == template_key)
            ).first()

    def create_template(self, values: dict[str, Any]) -> dict[str, Any]:
        unknown = set(values) - set(TEMPLATE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not (values.get("template_key") or "").strip() or not (values.get("template_name") or "").strip():
            raise ValidationError("Template key and name are required")
        if self.find_template(values["template_key"]) is not None:
            raise ValidationError(f"Template key '{values['template_key']}' already exists")
        t = NotificationTemplate(**values)
        self.save("create template", t)
        logger.info(f"Created notification template {t.template_key}")
        return template_row(t)

    def update_template(self, template_id: int, values: dict[str, Any]) -> dict[str, Any]:
        unknown = set(values) - set(TEMPLATE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        t = self._get(template_id)
        new_key = values.get("template_key")
        if new_key and new_key != t.template_key and self.find_template(new_key) is not None:
            raise ValidationError(f"Template key '{new_key}' already exists")
        for field, value in values.items():
            setattr(t, field, value)
        t.updated_at = utcnow()
        self.save("update template", t)
        return template_row(t)

    def delete_template(self, template_id: int) -> None:
        t = self._get(template_id)
        with self.backend_call("delete template"):
            self.session.delete(t)
            self.session.commit()

    # --- Sending ---

    def _log(self, **fields: Any) -> NotificationLog:
        entry = NotificationLog(**fields)
        self.save("record notification", entry)
        return entry

    def _active_template(self, template_key: str, channel: str, recipient: str, user_id: int | None):
        t = self.find_template(template_key)
        if t is None or not t.is_active:
            reason = "template_not_found" if t is None else "template_inactive"
            logger.warning(f"Notification template '{template_key}' unavailable ({reason}), not sending to {recipient}")
            self._log(
                user_id=user_id,
                notification_type=template_key,
                channel=channel,
                recipient=recipient,
                template=template_key,
                status="skipped",
                skip_reason=reason,
            )
            return None
        return t

    async def send_template_email(
        self, template_key: str, to: str, context: dict[str, Any], user_id: int | None = None
    ) -> DeliveryResult:
        t = self._active_template(template_key, "email", to, user_id)
        if t is None:
            return DeliveryResult(success=False, error=f"Template '{template_key}' not found or inactive")

        subject = render(t.email_subject, context)
        html_body = render(t.email_body_html, context)
        text = render(t.email_body_text, context) or None
        result = await self.functions.send_email(to, subject, html_body, text)  # type: ignore
        self._log(
            user_id=user_id,
            notification_type=template_key,
            channel="email",
            recipient=to,
            subject=subject,
            content=text or html_body,
            template=template_key,
            status="sent" if result.success else "failed",
            provider="edge_function",
            provider_message_id=result.message_id,
            provider_response={"messageId": result.message_id} if result.success else {"error": result.error},
            sent_at=utcnow() if result.success else None,
        )
        return result

    async def send_template_push(
        self,
        template_key: str,
        token: str,
        context: dict[str, Any],
        user_id: int | None = None,
        data: dict[str, str] | None = None,
    ) -> DeliveryResult:
        t = self._active_template(template_key, "push", token, user_id)
        if t is None:
            return DeliveryResult(success=False, error=f"Template '{template_key}' not found or inactive")

        title = render(t.push_title, context)
        body = render(t.push_body, context)
        result = await self.functions.send_push(  # type: ignore
            token, title, body, data=data, image_url=t.push_image_url, click_action=t.push_action_url
        )
        self._log(
            user_id=user_id,
            notification_type=template_key,
            channel="push",
            recipient=token,
            subject=title,
            content=body,
            template=template_key,
            status="sent" if result.success else "failed",
            provider="edge_function",
            provider_message_id=result.message_id,
            provider_response={"messageId": result.message_id} if result.success else {"error": result.error},
            sent_at=utcnow() if result.success else None,
        )
        return result

    # --- Log ---

    def list_logs(
        self,
        notification_type: str | None = None,
        channel: str | None = None,
        status: str | None = None,
        recipient: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        page, limit = clamp_page(page, limit)
        stmt = select(NotificationLog)
        if notification_type:
            stmt = stmt.where(NotificationLog.notification_type == notification_type)
        if channel:
            stmt = stmt.where(NotificationLog.channel == channel)
        if status:
            stmt = stmt.where(NotificationLog.status == status)
        if recipient:
            stmt = stmt.where(NotificationLog.recipient == recipient)
        with self.backend_call("fetch notification log"):
            total = self.session.exec(select(func.count()).select_from(stmt.subquery())).one()
            rows = self.session.exec(
                stmt.order_by(NotificationLog.created_at.desc(), NotificationLog.id.desc())  # type: ignore
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
        return page_payload([log_row(r) for r in rows], total, page, limit)
