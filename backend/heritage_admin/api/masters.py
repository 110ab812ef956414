"""REST API for master data and its translations."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.masterdata_service import MasterDataService
from heritage_admin.services.translation_service import TranslationService, get_translation_service
from heritage_admin.utils.coalesce import RequestSuperseded

router = APIRouter(dependencies=[Depends(get_current_staff)])
logger = logging.getLogger(__name__)


class TranslationIn(BaseModel):
    display_name: str
    description: str | None = None


class MasterCreate(BaseModel):
    category: str
    code: str
    display_order: int = 0
    metadata: dict[str, Any] | None = None
    translations: dict[str, TranslationIn] = {}


class MasterUpdate(BaseModel):
    code: str | None = None
    display_order: int | None = None
    is_active: bool | None = None
    metadata: dict[str, Any] | None = None


class TranslateRequest(BaseModel):
    field_key: str  # e.g. "12:display_name" or "new:description"
    text: str
    source: str = "en"
    targets: list[str] | None = None


@router.get("/categories")
async def list_categories(session: Session = Depends(get_session)):
    return MasterDataService(session).list_categories()


@router.get("/")
async def list_by_category(
    category: str,
    language: str = "EN",
    include_inactive: bool = False,
    session: Session = Depends(get_session),
):
    return MasterDataService(session).list_by_category(category, language, include_inactive)


@router.post("/")
async def create_master(body: MasterCreate, session: Session = Depends(get_session)):
    return MasterDataService(session).create(
        body.category,
        body.code,
        display_order=body.display_order,
        metadata=body.metadata,
        translations={lang: t.model_dump() for lang, t in body.translations.items()},
    )


@router.post("/translate")
async def translate_field(body: TranslateRequest, service: TranslationService = Depends(get_translation_service)):
    try:
        translations = await service.translate_field(body.field_key, body.text, body.targets, body.source)
    except RequestSuperseded:
        return {"status": "superseded", "translations": {}}
    return {"status": "ok", "translations": translations}


@router.patch("/{master_id}")
async def update_master(master_id: int, body: MasterUpdate, session: Session = Depends(get_session)):
    return MasterDataService(session).update(master_id, body.model_dump(exclude_unset=True))


@router.delete("/{master_id}")
async def delete_master(master_id: int, session: Session = Depends(get_session)):
    MasterDataService(session).delete(master_id)
    return {"status": "deleted"}


@router.get("/{master_id}/translations")
async def get_translations(master_id: int, session: Session = Depends(get_session)):
    return MasterDataService(session).get_translations(master_id)


@router.put("/{master_id}/translations/{language}")
async def upsert_translation(
    master_id: int, language: str, body: TranslationIn, session: Session = Depends(get_session)
):
    return MasterDataService(session).upsert_translation(master_id, language, body.display_name, body.description)
