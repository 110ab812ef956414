"""Row-change stream for console pages."""

import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from sqlmodel import SQLModel

from heritage_admin.core import database
from heritage_admin.core.security import resolve_staff
from heritage_admin.services.realtime import ALL_EVENTS, ChangeEvent, get_hub

router = APIRouter()
logger = logging.getLogger(__name__)

RESERVED_PARAMS = {"token", "table", "events"}


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket, table: str = "", token: str = "", events: str = ""):
    """Stream change events for `table`; any other query parameter is an equality filter."""
    await websocket.accept()
    try:
        with database.session_scope() as session:
            resolve_staff(token, session)
    except HTTPException as e:
        await websocket.close(code=4401, reason=str(e.detail))
        return

    if table not in SQLModel.metadata.tables:
        await websocket.close(code=4404, reason=f"Unknown table: {table}")
        return

    filters = {k: v for k, v in websocket.query_params.items() if k not in RESERVED_PARAMS}
    event_types = [e.strip() for e in events.split(",") if e.strip()] or ALL_EVENTS
    sub = get_hub().subscribe(table, event_types=event_types, filters=filters)

    async def forward(event: ChangeEvent) -> None:
        await websocket.send_json({"type": "change", **event.to_dict()})

    sub.listen(forward)
    await websocket.send_json({"type": "subscribed", "table": table, "filters": filters})
    try:
        while True:
            # clients may ping; nothing else is expected
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await sub.close()
