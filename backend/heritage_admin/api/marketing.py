"""REST API for marketing campaigns and mail messages."""

import datetime as dt

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import StaffContext, get_current_staff
from heritage_admin.services.marketing_service import MarketingService

router = APIRouter(dependencies=[Depends(get_current_staff)])


class CampaignIn(BaseModel):
    name: str | None = None
    description: str | None = None
    audience: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    status: str | None = None


class MailIn(BaseModel):
    title: str | None = None
    body: str | None = None
    audience: str | None = None
    date: dt.date | None = None
    status: str | None = None
    type: str | None = None


def _mail_values(body: MailIn) -> dict:
    values = body.model_dump(exclude_unset=True)
    if "date" in values:
        values["mail_date"] = values.pop("date")
    return values


@router.get("/campaigns")
async def list_campaigns(session: Session = Depends(get_session)):
    return MarketingService(session).list_campaigns()


@router.post("/campaigns")
async def create_campaign(
    body: CampaignIn, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return MarketingService(session).create_campaign(staff, body.model_dump(exclude_unset=True))


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: int, session: Session = Depends(get_session)):
    return MarketingService(session).get_campaign(campaign_id)


@router.patch("/campaigns/{campaign_id}")
async def update_campaign(campaign_id: int, body: CampaignIn, session: Session = Depends(get_session)):
    return MarketingService(session).update_campaign(campaign_id, body.model_dump(exclude_unset=True))


@router.delete("/campaigns/{campaign_id}")
async def delete_campaign(campaign_id: int, session: Session = Depends(get_session)):
    MarketingService(session).delete_campaign(campaign_id)
    return {"status": "deleted"}


@router.get("/mail")
async def list_mail(session: Session = Depends(get_session)):
    return MarketingService(session).list_mail()


@router.post("/mail")
async def create_mail(
    body: MailIn, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return MarketingService(session).create_mail(staff, _mail_values(body))


@router.get("/mail/{mail_id}")
async def get_mail(mail_id: int, session: Session = Depends(get_session)):
    return MarketingService(session).get_mail(mail_id)


@router.patch("/mail/{mail_id}")
async def update_mail(mail_id: int, body: MailIn, session: Session = Depends(get_session)):
    return MarketingService(session).update_mail(mail_id, _mail_values(body))


@router.delete("/mail/{mail_id}")
async def delete_mail(mail_id: int, session: Session = Depends(get_session)):
    MarketingService(session).delete_mail(mail_id)
    return {"status": "deleted"}
