"""End users, staff and user types of the heritage platform."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class UserType(SQLModel, table=True):
    __tablename__ = "heritage_usertype"

    user_type_id: Optional[int] = Field(default=None, primary_key=True)
    type_key: str = Field(index=True)  # tourist | admin | executive | artisan ...
    display_order: int = Field(default=0)
    is_active: bool = Field(default=True)


class UserTypeTranslation(SQLModel, table=True):
    __tablename__ = "heritage_usertypetranslation"

    translation_id: Optional[int] = Field(default=None, primary_key=True)
    user_type_id: int = Field(foreign_key="heritage_usertype.user_type_id", index=True)
    language_code: str = Field(default="EN")
    type_name: str


class HeritageUser(SQLModel, table=True):
    __tablename__ = "heritage_user"

    user_id: Optional[int] = Field(default=None, primary_key=True)
    full_name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = Field(default=None, index=True)
    password_hash: Optional[str] = None
    user_type_id: Optional[int] = Field(default=None, foreign_key="heritage_usertype.user_type_id")
    is_verified: bool = Field(default=False)
    user_type_verified: Optional[bool] = None  # vendor-type accounts awaiting staff verification
    language_code: str = Field(default="EN")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None


class UserProfile(SQLModel, table=True):
    __tablename__ = "heritage_user_profile"

    profile_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="heritage_user.user_id", index=True)
    avatar_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_facebook_connected: bool = Field(default=False)
    is_instagram_connected: bool = Field(default=False)
    is_twitter_connected: bool = Field(default=False)
