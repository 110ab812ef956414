"""Master data, feedback, marketing and call-support rows."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column, Date, UniqueConstraint
from sqlmodel import Field, SQLModel


class MasterData(SQLModel, table=True):
    __tablename__ = "heritage_masterdata"

    master_id: Optional[int] = Field(default=None, primary_key=True)
    category: str = Field(index=True)  # language | site_type | preference | report_reason ...
    code: str
    display_order: int = Field(default=0)
    is_active: bool = Field(default=True)
    metadata_: dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None


class MasterDataTranslation(SQLModel, table=True):
    __tablename__ = "heritage_masterdatatranslation"
    __table_args__ = (UniqueConstraint("master_id", "language_code"),)

    translation_id: Optional[int] = Field(default=None, primary_key=True)
    master_id: int = Field(foreign_key="heritage_masterdata.master_id", index=True)
    language_code: str = Field(default="EN")
    display_name: str
    description: Optional[str] = None


class AppFeedback(SQLModel, table=True):
    __tablename__ = "heritage_app_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="heritage_user.user_id")
    category: Optional[str] = None  # uiux | bug | performance | other
    comment: Optional[str] = None
    status: Optional[str] = None  # Open | In Progress | Resolved
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Optional[datetime] = None


class MarketingCampaign(SQLModel, table=True):
    __tablename__ = "heritage_marketing_campaign"

    campaign_id: Optional[int] = Field(default=None, primary_key=True)
    name: str = ""
    description: str = ""
    audience: str = "All Users"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = "Draft"  # Draft | Active | Paused | Completed
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    created_by: Optional[str] = None


class MarketingMail(SQLModel, table=True):
    __tablename__ = "heritage_marketing_mail"

    mail_id: Optional[int] = Field(default=None, primary_key=True)
    title: str = ""
    body: str = ""
    audience: str = "All Users"
    mail_date: Optional[date] = Field(default=None, sa_column=Column("date", Date))
    status: str = "Draft"  # Draft | Scheduled | Sent
    type: str = "Announcement"  # Event | Offer | Announcement
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    created_by: Optional[str] = None


class CallSupportRequest(SQLModel, table=True):
    __tablename__ = "heritage_callsupportrequest"

    request_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    phone_number: str = ""
    country_code: str = ""
    full_phone_number: str = ""
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    preferred_language: Optional[str] = None
    request_status: str = Field(default="pending")  # pending | in_progress | closed
    support_notes: Optional[str] = None
    assigned_to: Optional[int] = None
    called_at: Optional[datetime] = None
    call_duration_seconds: Optional[int] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
