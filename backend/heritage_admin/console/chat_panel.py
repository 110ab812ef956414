"""State of the staff chat panel: the active-conversation list and the open thread.

The panel keeps both views current from realtime events without refetching.
Its only self-healing path is `refresh()`, triggered by the staff member.
"""

import inspect
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, ContextManager

from sqlmodel import Session

from heritage_admin.core import database
from heritage_admin.core.config import settings
from heritage_admin.core.errors import ServiceError, ValidationError
from heritage_admin.core.security import StaffContext
from heritage_admin.models.chat import SENDER_USER, STATUS_ACTIVE
from heritage_admin.services.chat_service import CONVERSATIONS_TABLE, MESSAGES_TABLE, ChatService
from heritage_admin.services.realtime import INSERT, UPDATE, ChangeEvent, RealtimeHub, Subscription

logger = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
READY = "ready"
FAILED = "failed"

Notify = Callable[[str, dict[str, Any]], Awaitable[None] | None]


def _last_message_key(row: dict[str, Any]) -> tuple:
    value = row.get("last_message_at")
    stamp = datetime.fromisoformat(value).timestamp() if value else 0.0
    return (value is not None, stamp, row.get("conversation_id") or 0)


class ConversationListState:
    """Active conversations, newest last message first, conversations without messages last."""

    def __init__(self) -> None:
        self.conversations: list[dict[str, Any]] = []
        self.error: str | None = None
        self.loaded = False

    def _sort(self) -> None:
        self.conversations.sort(key=_last_message_key, reverse=True)

    def replace(self, rows: list[dict[str, Any]]) -> None:
        self.conversations = [dict(r) for r in rows if r.get("status", STATUS_ACTIVE) == STATUS_ACTIVE]
        self._sort()
        self.error = None
        self.loaded = True

    def fail(self, message: str) -> None:
        """Keep whatever was already shown and surface the error."""
        self.error = message

    def find(self, conversation_id: int) -> dict[str, Any] | None:
        for row in self.conversations:
            if row["conversation_id"] == conversation_id:
                return row
        return None

    def apply(self, event: ChangeEvent) -> bool:
        row = event.new
        conversation_id = row.get("conversation_id")
        if conversation_id is None:
            return False

        existing = self.find(conversation_id)
        if row.get("status", STATUS_ACTIVE) != STATUS_ACTIVE:
            if existing is None:
                return False
            self.conversations.remove(existing)
            return True

        if existing is None:
            self.conversations.append(dict(row))
        else:
            existing.update(row)
        self._sort()
        return True

    def set_unread(self, conversation_id: int, count: int) -> None:
        row = self.find(conversation_id)
        if row is not None:
            row["unread_count_executive"] = max(0, count)

    def to_dict(self) -> dict[str, Any]:
        return {"conversations": self.conversations, "error": self.error}


class MessageThreadState:
    """Messages of the selected conversation, oldest first, one entry per message_id."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.conversation_id: int | None = None
        self.status = IDLE
        self.messages: list[dict[str, Any]] = []
        self.error: str | None = None
        self.compose = ""
        self.sending = False

    def begin(self, conversation_id: int) -> None:
        self.reset()
        self.conversation_id = conversation_id
        self.status = LOADING

    def loaded(self, rows: list[dict[str, Any]]) -> None:
        self.messages = []
        for row in rows:
            self.upsert(row)
        self.status = READY

    def fail(self, message: str) -> None:
        self.error = message
        self.status = FAILED

    def _index(self, message_id: int) -> int | None:
        for i, msg in enumerate(self.messages):
            if msg["message_id"] == message_id:
                return i
        return None

    def upsert(self, row: dict[str, Any]) -> bool:
        """Append a new message at the tail or replace the one with the same id."""
        if row.get("conversation_id") != self.conversation_id:
            return False
        index = self._index(row["message_id"])
        if index is None:
            self.messages.append(dict(row))
        else:
            self.messages[index] = {**self.messages[index], **row}
        return True

    def apply(self, event: ChangeEvent) -> bool:
        if self.status != READY:
            return False
        if event.event_type == INSERT:
            return self.upsert(event.new)
        if event.event_type == UPDATE:
            if self._index(event.new.get("message_id")) is None:
                return False
            return self.upsert(event.new)
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "status": self.status,
            "messages": self.messages,
            "error": self.error,
            "compose": self.compose,
        }


class ChatPanel:
    """Drives both states for one signed-in staff member."""

    def __init__(
        self,
        staff: StaffContext,
        hub: RealtimeHub,
        session_factory: Callable[[], ContextManager[Session]] | None = None,
        notify: Notify | None = None,
        message_limit: int | None = None,
    ) -> None:
        self.staff = staff
        self.hub = hub
        self.session_factory = session_factory or database.session_scope
        self.notify = notify
        self.message_limit = message_limit or settings.chat_message_limit
        self.conversations = ConversationListState()
        self.thread = MessageThreadState()
        self._list_sub: Subscription | None = None
        self._thread_sub: Subscription | None = None

    async def _emit(self, kind: str) -> None:
        if self.notify is None:
            return
        payload = self.conversations.to_dict() if kind == "conversations" else self.thread.to_dict()
        result = self.notify(kind, payload)
        if inspect.isawaitable(result):
            await result

    # --- Conversation list ---

    async def open(self) -> None:
        self._list_sub = self.hub.subscribe(CONVERSATIONS_TABLE, event_types=(INSERT, UPDATE))
        await self.refresh()
        self._list_sub.listen(self._on_conversation_event)

    async def refresh(self) -> bool:
        try:
            with self.session_factory() as session:
                rows = ChatService(session, self.hub).list_active_conversations()
        except ServiceError as e:
            logger.warning(f"Conversation list fetch failed: {e.message}")
            self.conversations.fail(e.message)
            await self._emit("conversations")
            return False
        self.conversations.replace(rows)
        await self._emit("conversations")
        return True

    async def _on_conversation_event(self, event: ChangeEvent) -> None:
        if self.conversations.apply(event):
            await self._emit("conversations")

    # --- Message thread ---

    async def _close_thread(self) -> None:
        if self._thread_sub is not None:
            await self._thread_sub.close()
            self._thread_sub = None

    async def select(self, conversation_id: int) -> None:
        await self._close_thread()
        self.thread.begin(conversation_id)
        await self._emit("thread")

        # subscribed before the fetch so nothing committed meanwhile is missed; duplicates dedupe by id
        sub = self.hub.subscribe(MESSAGES_TABLE, event_types=(INSERT, UPDATE), filters={"conversation_id": conversation_id})
        try:
            with self.session_factory() as session:
                rows = ChatService(session, self.hub).get_messages(conversation_id, limit=self.message_limit)
        except ServiceError as e:
            logger.warning(f"Message fetch failed for conversation {conversation_id}: {e.message}")
            await sub.close()
            self.thread.fail(e.message)
            await self._emit("thread")
            return

        self._thread_sub = sub
        self.thread.loaded(rows)
        await self._emit("thread")
        await self.mark_read()
        sub.listen(self._on_message_event)

    async def _on_message_event(self, event: ChangeEvent) -> None:
        if event.new.get("conversation_id") != self.thread.conversation_id:
            return
        if self.thread.apply(event):
            await self._emit("thread")
            if event.event_type == INSERT and event.new.get("sender_type") == SENDER_USER and not event.new.get("is_read"):
                await self.mark_read()

    async def mark_read(self) -> int:
        conversation_id = self.thread.conversation_id
        if conversation_id is None:
            return 0
        try:
            with self.session_factory() as session:
                service = ChatService(session, self.hub)
                count = service.mark_messages_read(self.staff, conversation_id)
                unread = service.get_conversation(conversation_id)["unread_count_executive"] if count else None
        except ServiceError as e:
            logger.warning(f"Mark-read failed for conversation {conversation_id}: {e.message}")
            return 0
        if count:
            self.conversations.set_unread(conversation_id, unread)
            await self._emit("conversations")
        return count

    async def send(self, text: str) -> dict[str, Any] | None:
        """Send to the open conversation. Blank text does nothing."""
        self.thread.compose = text or ""
        if not (text or "").strip():
            return None
        conversation_id = self.thread.conversation_id
        if conversation_id is None or self.thread.status != READY:
            raise ValidationError("No conversation selected")

        self.thread.sending = True
        try:
            with self.session_factory() as session:
                row = ChatService(session, self.hub).send_message(self.staff, conversation_id, text)
        finally:
            self.thread.sending = False

        self.thread.compose = ""
        self.thread.upsert(row)
        await self._emit("thread")
        return row

    async def close(self) -> None:
        await self._close_thread()
        if self._list_sub is not None:
            await self._list_sub.close()
            self._list_sub = None
        self.thread.reset()
