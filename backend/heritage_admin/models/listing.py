"""Heritage sites and the vendor listings staff verify before they go live."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class HeritageSite(SQLModel, table=True):
    __tablename__ = "heritage_site"

    site_id: Optional[int] = Field(default=None, primary_key=True)
    name_default: str
    short_desc_default: Optional[str] = None
    full_desc_default: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    vr_link: Optional[str] = None
    qr_link: Optional[str] = None
    meta_title_def: Optional[str] = None
    meta_description_def: Optional[str] = None
    site_type: Optional[str] = Field(default=None, index=True)
    entry_fee: Optional[float] = None
    entry_type: Optional[str] = None  # free | paid
    experience: Optional[str] = None  # vr | audio_guide | guided_tour | interactive
    accessibility: Optional[str] = None
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)


class HeritageHotel(SQLModel, table=True):
    __tablename__ = "heritage_hotel"

    hotel_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="heritage_user.user_id", index=True)
    hotel_name: Optional[str] = None
    subtitle: Optional[str] = None
    status: Optional[str] = None  # draft | pending | published
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HeritageFood(SQLModel, table=True):
    __tablename__ = "heritage_food"

    food_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="heritage_user.user_id", index=True)
    food_name: Optional[str] = None
    subtitle: Optional[str] = None
    status: Optional[str] = None  # pending | published
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HeritageArtisan(SQLModel, table=True):
    __tablename__ = "heritage_artisan"

    artisan_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="heritage_user.user_id", index=True)
    artisan_name: Optional[str] = None
    short_bio: Optional[str] = None
    craft_type: Optional[str] = None
    is_verified: Optional[bool] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
