"""Heritage sites shown in the visitor app: CRUD and the active toggle."""

import logging
from typing import Any

from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.models.listing import HeritageSite
from heritage_admin.services.base import TableService
from heritage_admin.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

SITE_FIELDS = (
    "name_default",
    "short_desc_default",
    "full_desc_default",
    "latitude",
    "longitude",
    "vr_link",
    "qr_link",
    "meta_title_def",
    "meta_description_def",
    "site_type",
    "entry_fee",
    "entry_type",
    "experience",
    "accessibility",
    "is_active",
)


def site_row(site: HeritageSite) -> dict[str, Any]:
    row = {field: getattr(site, field) for field in SITE_FIELDS}
    row["site_id"] = site.site_id
    row["created_at"] = isoformat(site.created_at)
    row["updated_at"] = isoformat(site.updated_at)
    return row


def _check_fields(values: dict[str, Any]) -> None:
    unknown = set(values) - set(SITE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
    if "name_default" in values and not (values["name_default"] or "").strip():
        raise ValidationError("Site name is required")
    fee = values.get("entry_fee")
    if fee is not None and fee < 0:
        raise ValidationError("Entry fee cannot be negative")


class HeritageSiteService(TableService):

    def list_sites(
        self,
        search: str | None = None,
        status: str | None = None,
        experience: str | None = None,
        site_type: str | None = None,
    ) -> list[dict[str, Any]]:
        """Most recently updated first. `status` is "active" or "inactive"; "all" skips a filter."""
        stmt = select(HeritageSite).order_by(HeritageSite.updated_at.desc(), HeritageSite.site_id.desc())  # type: ignore
        if search and search.strip():
            stmt = stmt.where(HeritageSite.name_default.ilike(f"%{search.strip()}%"))  # type: ignore
        if status and status != "all":
            if status not in ("active", "inactive"):
                raise ValidationError(f"Invalid status filter: {status}")
            stmt = stmt.where(HeritageSite.is_active == (status == "active"))
        if experience and experience != "all":
            stmt = stmt.where(HeritageSite.experience == experience)
        if site_type and site_type != "all":
            stmt = stmt.where(HeritageSite.site_type == site_type)
        with self.backend_call("fetch heritage sites"):
            sites = self.session.exec(stmt).all()
        return [site_row(s) for s in sites]

    def _get(self, site_id: int) -> HeritageSite:
        with self.backend_call("fetch heritage site"):
            site = self.session.get(HeritageSite, site_id)
        if site is None:
            raise NotFoundError("Heritage site not found")
        return site

    def get_site(self, site_id: int) -> dict[str, Any]:
        return site_row(self._get(site_id))

    def create_site(self, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values)
        if "name_default" not in values:
            raise ValidationError("Site name is required")
        site = HeritageSite(**{**values, "name_default": values["name_default"].strip()})
        self.save("create heritage site", site)
        logger.info(f"Created heritage site {site.site_id} ({site.name_default})")
        return site_row(site)

    def update_site(self, site_id: int, values: dict[str, Any]) -> dict[str, Any]:
        _check_fields(values)
        site = self._get(site_id)
        for field, value in values.items():
            setattr(site, field, value.strip() if field == "name_default" else value)
        site.updated_at = utcnow()
        self.save("update heritage site", site)
        return site_row(site)

    def set_active(self, site_id: int, is_active: bool) -> dict[str, Any]:
        site = self._get(site_id)
        site.is_active = is_active
        site.updated_at = utcnow()
        self.save("update heritage site status", site)
        logger.info(f"Heritage site {site_id} {'activated' if is_active else 'deactivated'}")
        return site_row(site)

    def delete_site(self, site_id: int) -> None:
        site = self._get(site_id)
        with self.backend_call("delete heritage site"):
            self.session.delete(site)
            self.session.commit()
        logger.info(f"Deleted heritage site {site_id}")
