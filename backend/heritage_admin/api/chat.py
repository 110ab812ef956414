"""Chat REST endpoints and the staff chat panel WebSocket."""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from sqlmodel import Session

from heritage_admin.console.chat_panel import ChatPanel
from heritage_admin.core import database
from heritage_admin.core.config import settings
from heritage_admin.core.database import get_session
from heritage_admin.core.errors import ServiceError
from heritage_admin.core.security import StaffContext, get_current_staff, resolve_staff
from heritage_admin.services.chat_service import ChatService
from heritage_admin.services.realtime import get_hub

router = APIRouter()
logger = logging.getLogger(__name__)


class ConversationCreate(BaseModel):
    user_id: int
    conversation_type: str = "executive"


class MessageCreate(BaseModel):
    text: str = ""
    message_type: str = "text"
    attachment_url: str | None = None


def _service(session: Session) -> ChatService:
    return ChatService(session, get_hub())


@router.get("/conversations")
async def list_conversations(
    staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return _service(session).list_active_conversations()


@router.get("/conversations/stats")
async def conversation_stats(
    staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    service = _service(session)
    return {
        "active_conversations": service.count_active_conversations(),
        "unread_messages": service.count_unread_for_staff(),
    }


@router.post("/conversations")
async def create_conversation(
    body: ConversationCreate,
    staff: StaffContext = Depends(get_current_staff),
    session: Session = Depends(get_session),
):
    return _service(session).create_or_get_conversation(body.user_id, body.conversation_type)


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: int, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return _service(session).get_conversation(conversation_id)


@router.get("/conversations/{conversation_id}/messages")
async def get_messages(
    conversation_id: int,
    limit: int | None = None,
    staff: StaffContext = Depends(get_current_staff),
    session: Session = Depends(get_session),
):
    return _service(session).get_messages(conversation_id, limit=limit or settings.chat_message_limit)


@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: int,
    body: MessageCreate,
    staff: StaffContext = Depends(get_current_staff),
    session: Session = Depends(get_session),
):
    return _service(session).send_message(
        staff, conversation_id, body.text, message_type=body.message_type, attachment_url=body.attachment_url
    )


@router.post("/conversations/{conversation_id}/read")
async def mark_read(
    conversation_id: int, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return {"marked": _service(session).mark_messages_read(staff, conversation_id)}


@router.post("/conversations/{conversation_id}/assign")
async def assign_conversation(
    conversation_id: int, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return _service(session).assign_conversation(staff, conversation_id)


@router.post("/conversations/{conversation_id}/close")
async def close_conversation(
    conversation_id: int, staff: StaffContext = Depends(get_current_staff), session: Session = Depends(get_session)
):
    return _service(session).close_conversation(conversation_id)


@router.websocket("/panel/ws")
async def chat_panel_websocket(websocket: WebSocket, token: str = ""):
    """Live chat panel.

    Client sends {"action": "select", "conversation_id": N}, {"action": "send", "text": "..."}
    or {"action": "refresh"}. Server pushes {"type": "conversations" | "thread" | "sent" | "error", ...}.
    """
    await websocket.accept()
    try:
        with database.session_scope() as session:
            staff = resolve_staff(token, session)
    except HTTPException as e:
        await websocket.close(code=4401, reason=str(e.detail))
        return

    async def notify(kind: str, payload: dict) -> None:
        await websocket.send_json({"type": kind, **payload})

    panel = ChatPanel(staff, get_hub(), notify=notify)
    try:
        await panel.open()
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                action = data.get("action")
                if action == "select":
                    await panel.select(int(data["conversation_id"]))
                elif action == "send":
                    row = await panel.send(data.get("text", ""))
                    if row is not None:
                        await websocket.send_json({"type": "sent", "message": row})
                elif action == "refresh":
                    await panel.refresh()
                else:
                    await websocket.send_json({"type": "error", "detail": f"Unknown action: {action}"})
            except ServiceError as e:
                await websocket.send_json({"type": "error", "detail": e.message})
            except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError):
                await websocket.send_json({"type": "error", "detail": "Invalid request"})
    except WebSocketDisconnect:
        pass
    finally:
        await panel.close()
