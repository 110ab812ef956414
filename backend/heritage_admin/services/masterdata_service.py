"""Master data lookups (languages, site types, preferences, ...) and their translations."""

import logging
from typing import Any

from sqlalchemy import func
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.content import MasterData, MasterDataTranslation
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("code", "display_order", "is_active", "metadata")


def master_row(master: MasterData, translation: MasterDataTranslation | None = None) -> dict[str, Any]:
    return {
        "master_id": master.master_id,
        "category": master.category,
        "code": master.code,
        "display_order": master.display_order,
        "is_active": master.is_active,
        "metadata": master.metadata_ or {},
        "display_name": translation.display_name if translation else master.code,
        "description": translation.description if translation else None,
        "created_at": isoformat(master.created_at),
        "updated_at": isoformat(master.updated_at),
    }


class MasterDataService(TableService):

    def list_by_category(
        self, category: str, language: str = "EN", include_inactive: bool = False
    ) -> list[dict[str, Any]]:
        stmt = (
            select(MasterData, MasterDataTranslation)
            .join(
                MasterDataTranslation,
                (MasterDataTranslation.master_id == MasterData.master_id)  # type: ignore
                & (MasterDataTranslation.language_code == language.upper()),
                isouter=True,
            )
            .where(MasterData.category == category)
            .order_by(MasterData.display_order, MasterData.master_id)  # type: ignore
        )
        if not include_inactive:
            stmt = stmt.where(MasterData.is_active == True)  # noqa: E712
        with self.backend_call("fetch master data"):
            rows = self.session.exec(stmt).all()
        return [master_row(master, translation) for master, translation in rows]

    def list_categories(self) -> list[dict[str, Any]]:
        with self.backend_call("fetch master categories"):
            rows = self.session.exec(
                select(MasterData.category, func.count())
                .group_by(MasterData.category)
                .order_by(MasterData.category)
            ).all()
        return [{"category": category, "count": count} for category, count in rows]

    def _get(self, master_id: int) -> MasterData:
        with self.backend_call("fetch master data"):
            master = self.session.get(MasterData, master_id)
        if master is None:
            raise NotFoundError("Master data item not found")
        return master

    def create(
        self,
        category: str,
        code: str,
        display_order: int = 0,
        metadata: dict[str, Any] | None = None,
        translations: dict[str, dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        if not category.strip() or not code.strip():
            raise ValidationError("Category and code are required")
        translations = translations or {}
        if translations and not any((t.get("display_name") or "").strip() for t in translations.values()):
            raise ValidationError("At least one translation (display name) is required")

        master = MasterData(
            category=category.strip(), code=code.strip(), display_order=display_order, metadata_=metadata or {}
        )
        self.save("create master data", master)
        for language, values in translations.items():
            if (values.get("display_name") or "").strip():
                self.upsert_translation(master.master_id, language, values["display_name"], values.get("description"))  # type: ignore
        logger.info(f"Created master data {master.category}/{master.code} ({master.master_id})")
        return master_row(master)

    def update(self, master_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        master = self._get(master_id)
        for field, value in updates.items():
            setattr(master, "metadata_" if field == "metadata" else field, value)
        master.updated_at = utcnow()
        self.save("update master data", master)
        return master_row(master)

    def delete(self, master_id: int) -> None:
        master = self._get(master_id)
        with self.backend_call("delete master data"):
            for translation in self.session.exec(
                select(MasterDataTranslation).where(MasterDataTranslation.master_id == master_id)
            ).all():
                self.session.delete(translation)
            self.session.delete(master)
            self.session.commit()
        logger.info(f"Deleted master data {master_id}")

    def upsert_translation(
        self, master_id: int, language: str, display_name: str, description: str | None = None
    ) -> dict[str, Any]:
        if not display_name or not display_name.strip():
            raise ValidationError("Display name is required")
        self._get(master_id)
        code = language.upper()
        with self.backend_call("fetch translation"):
            translation = self.session.exec(
                select(MasterDataTranslation).where(
                    MasterDataTranslation.master_id == master_id, MasterDataTranslation.language_code == code
                )
            ).first()
        if translation is None:
            translation = MasterDataTranslation(master_id=master_id, language_code=code, display_name="")
        translation.display_name = display_name.strip()
        translation.description = description or None
        self.save("save translation", translation)
        return {
            "master_id": master_id,
            "language_code": translation.language_code,
            "display_name": translation.display_name,
            "description": translation.description,
        }

    def get_translations(self, master_id: int) -> dict[str, dict[str, Any]]:
        self._get(master_id)
        with self.backend_call("fetch translations"):
            rows = self.session.exec(
                select(MasterDataTranslation).where(MasterDataTranslation.master_id == master_id)
            ).all()
        return {
            row.language_code.lower(): {"display_name": row.display_name, "description": row.description or ""}
            for row in rows
        }
