"""REST API for heritage sites."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.heritage_site_service import HeritageSiteService

router = APIRouter(dependencies=[Depends(get_current_staff)])


class SiteIn(BaseModel):
    name_default: str | None = None
    short_desc_default: str | None = None
    full_desc_default: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    vr_link: str | None = None
    qr_link: str | None = None
    meta_title_def: str | None = None
    meta_description_def: str | None = None
    site_type: str | None = None
    entry_fee: float | None = None
    entry_type: str | None = None
    experience: str | None = None
    accessibility: str | None = None
    is_active: bool | None = None


class SiteStatus(BaseModel):
    is_active: bool


@router.get("/")
async def list_sites(
    search: str | None = None,
    status: str | None = None,
    experience: str | None = None,
    site_type: str | None = None,
    session: Session = Depends(get_session),
):
    return HeritageSiteService(session).list_sites(search, status, experience, site_type)


@router.post("/")
async def create_site(body: SiteIn, session: Session = Depends(get_session)):
    return HeritageSiteService(session).create_site(body.model_dump(exclude_none=True))


@router.get("/{site_id}")
async def get_site(site_id: int, session: Session = Depends(get_session)):
    return HeritageSiteService(session).get_site(site_id)


@router.patch("/{site_id}")
async def update_site(site_id: int, body: SiteIn, session: Session = Depends(get_session)):
    return HeritageSiteService(session).update_site(site_id, body.model_dump(exclude_unset=True))


@router.patch("/{site_id}/status")
async def set_site_status(site_id: int, body: SiteStatus, session: Session = Depends(get_session)):
    return HeritageSiteService(session).set_active(site_id, body.is_active)


@router.delete("/{site_id}")
async def delete_site(site_id: int, session: Session = Depends(get_session)):
    HeritageSiteService(session).delete_site(site_id)
    return {"status": "deleted"}
