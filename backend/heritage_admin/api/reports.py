"""REST API for reports and the dashboard summary."""

from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from heritage_admin.core.config import settings
from heritage_admin.core.database import get_session
from heritage_admin.core.errors import ValidationError
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.reports_service import ReportsService
from heritage_admin.utils.dates import optional_date_range, resolve_date_range
from heritage_admin.utils.export import report_to_csv

router = APIRouter(dependencies=[Depends(get_current_staff)])

REPORT_KINDS = ("users", "bookings", "revenue")


def _build(kind: str, service: ReportsService, start_date: date | None, end_date: date | None, module: str | None):
    date_range = resolve_date_range(start_date, end_date, settings.default_report_days)
    if kind == "users":
        return service.user_report(date_range)
    if kind == "bookings":
        return service.booking_report(date_range)
    if kind == "revenue":
        return service.revenue_report(date_range)
    if kind == "module":
        if not module:
            raise ValidationError("Module is required for a module report")
        return service.module_report(module, date_range)
    raise ValidationError(f"Unknown report: {kind}")


@router.get("/dashboard")
async def dashboard(session: Session = Depends(get_session)):
    return ReportsService(session).dashboard_summary()


@router.get("/dashboard/activities")
async def recent_activities(
    limit: int = 10,
    start_date: date | None = None,
    end_date: date | None = None,
    session: Session = Depends(get_session),
):
    date_range = optional_date_range(start_date, end_date)
    return ReportsService(session).recent_activities(max(1, min(limit, 50)), date_range)


@router.get("/dashboard/health")
async def system_health(session: Session = Depends(get_session)):
    return ReportsService(session).system_health()


@router.get("/modules/{module}")
async def module_report(
    module: str,
    start_date: date | None = None,
    end_date: date | None = None,
    session: Session = Depends(get_session),
):
    return _build("module", ReportsService(session), start_date, end_date, module)


@router.get("/{kind}/export")
async def export_report(
    kind: str,
    start_date: date | None = None,
    end_date: date | None = None,
    module: str | None = None,
    session: Session = Depends(get_session),
):
    report = _build(kind, ReportsService(session), start_date, end_date, module)
    filename = f"{kind}-report.csv"
    return PlainTextResponse(
        report_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{kind}")
async def get_report(
    kind: str,
    start_date: date | None = None,
    end_date: date | None = None,
    session: Session = Depends(get_session),
):
    if kind not in REPORT_KINDS:
        raise ValidationError(f"Unknown report: {kind}")
    return _build(kind, ReportsService(session), start_date, end_date, None)
