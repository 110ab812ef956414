"""Notification templates and the delivery log."""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class NotificationTemplate(SQLModel, table=True):
    __tablename__ = "heritage_notification_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    template_key: str = Field(index=True, unique=True)
    template_name: str
    email_subject: str = ""
    email_body_html: str = ""
    email_body_text: Optional[str] = None
    sms_body: Optional[str] = None
    push_title: Optional[str] = None
    push_body: Optional[str] = None
    push_image_url: Optional[str] = None
    push_action_url: Optional[str] = None
    is_critical: bool = Field(default=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationLog(SQLModel, table=True):
    __tablename__ = "heritage_notification_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = None
    notification_type: str = ""
    channel: str  # email | push
    recipient: str
    subject: Optional[str] = None
    content: Optional[str] = None
    template: Optional[str] = None
    status: str  # sent | failed | skipped
    skip_reason: Optional[str] = None
    provider: Optional[str] = None
    provider_message_id: Optional[str] = None
    provider_response: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    sent_at: Optional[datetime] = None
