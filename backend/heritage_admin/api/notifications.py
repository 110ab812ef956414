"""REST API for notification templates, test sends and the delivery log."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.core.database import get_session
from heritage_admin.core.security import get_current_staff
from heritage_admin.services.functions import FunctionsClient, get_functions_client
from heritage_admin.services.notification_service import NotificationService

router = APIRouter(dependencies=[Depends(get_current_staff)])


class TemplateIn(BaseModel):
    template_key: str | None = None
    template_name: str | None = None
    email_subject: str | None = None
    email_body_html: str | None = None
    email_body_text: str | None = None
    sms_body: str | None = None
    push_title: str | None = None
    push_body: str | None = None
    push_image_url: str | None = None
    push_action_url: str | None = None
    is_critical: bool | None = None
    is_active: bool | None = None


class SendEmailRequest(BaseModel):
    template_key: str
    to: str
    context: dict[str, Any] = {}
    user_id: int | None = None


class SendPushRequest(BaseModel):
    template_key: str
    token: str
    context: dict[str, Any] = {}
    data: dict[str, str] | None = None
    user_id: int | None = None


@router.get("/templates")
async def list_templates(session: Session = Depends(get_session)):
    return NotificationService(session).list_templates()


@router.post("/templates")
async def create_template(body: TemplateIn, session: Session = Depends(get_session)):
    return NotificationService(session).create_template(body.model_dump(exclude_none=True))


@router.get("/templates/{template_id}")
async def get_template(template_id: int, session: Session = Depends(get_session)):
    return NotificationService(session).get_template(template_id)


@router.patch("/templates/{template_id}")
async def update_template(template_id: int, body: TemplateIn, session: Session = Depends(get_session)):
    return NotificationService(session).update_template(template_id, body.model_dump(exclude_unset=True))


@router.delete("/templates/{template_id}")
async def delete_template(template_id: int, session: Session = Depends(get_session)):
    NotificationService(session).delete_template(template_id)
    return {"status": "deleted"}


@router.post("/send-email")
async def send_email(
    body: SendEmailRequest,
    session: Session = Depends(get_session),
    functions: FunctionsClient = Depends(get_functions_client),
):
    result = await NotificationService(session, functions=functions).send_template_email(
        body.template_key, body.to, body.context, user_id=body.user_id
    )
    return {"success": result.success, "message_id": result.message_id, "error": result.error}


@router.post("/send-push")
async def send_push(
    body: SendPushRequest,
    session: Session = Depends(get_session),
    functions: FunctionsClient = Depends(get_functions_client),
):
    result = await NotificationService(session, functions=functions).send_template_push(
        body.template_key, body.token, body.context, user_id=body.user_id, data=body.data
    )
    return {"success": result.success, "message_id": result.message_id, "error": result.error}


@router.get("/logs")
async def list_logs(
    notification_type: str | None = None,
    channel: str | None = None,
    status: str | None = None,
    recipient: str | None = None,
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
):
    return NotificationService(session).list_logs(
        notification_type=notification_type, channel=channel, status=status, recipient=recipient, page=page, limit=limit
    )
