"""Poll the chat tables for rows written by other writers and publish them as change events.

The end-user mobile app writes straight to the platform tables, so the console
only learns about its rows by watching them. Conversations are tracked by an
updated_at watermark, new messages by a message_id watermark and read receipts
by a read_at watermark.

Timestamps written by other clients can land behind a watermark that has
already moved on (clock skew, long transactions), so the timestamp queries
look back `lookback` past their mark and skip rows already published with the
same (id, timestamp). Rows this process published itself may still be seen
again; consumers dedupe by id.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlmodel import Session, select

from heritage_admin.core import database
from heritage_admin.core.config import settings
from heritage_admin.models.chat import ChatConversation, ChatMessage
from heritage_admin.models.user import HeritageUser, UserProfile
from heritage_admin.services.chat_service import (
    CONVERSATIONS_TABLE,
    MESSAGES_TABLE,
    conversation_row,
    message_row,
)
from heritage_admin.services.realtime.hub import INSERT, UPDATE, ChangeEvent, RealtimeHub
from heritage_admin.utils.dates import as_utc

logger = logging.getLogger(__name__)

SeenKey = tuple[int, datetime]


class ChangeFeed:

    def __init__(self, hub: RealtimeHub, lookback: float | None = None) -> None:
        self.hub = hub
        self.lookback = timedelta(
            seconds=settings.change_feed_lookback_seconds if lookback is None else lookback
        )
        self.conversation_mark: datetime | None = None
        self.message_mark = 0
        self.read_mark: datetime | None = None
        self.primed = False
        self._known_conversations: set[int] = set()
        self._seen_conversations: set[SeenKey] = set()
        self._seen_reads: set[SeenKey] = set()

    def _window_start(self, mark: datetime | None) -> datetime | None:
        return as_utc(mark) - self.lookback if mark is not None else None

    def _conversations_since(self, session: Session, mark: datetime | None):
        stmt = (
            select(ChatConversation, HeritageUser, UserProfile)
            .join(HeritageUser, HeritageUser.user_id == ChatConversation.user_id, isouter=True)  # type: ignore
            .join(UserProfile, UserProfile.user_id == ChatConversation.user_id, isouter=True)  # type: ignore
            .order_by(ChatConversation.updated_at, ChatConversation.conversation_id)  # type: ignore
        )
        start = self._window_start(mark)
        if start is not None:
            stmt = stmt.where(ChatConversation.updated_at > start)
        return session.exec(stmt).all()

    def _reads_since(self, session: Session, mark: datetime | None, up_to_id: int):
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.read_at != None, ChatMessage.message_id <= up_to_id)  # noqa: E711
            .order_by(ChatMessage.read_at, ChatMessage.message_id)  # type: ignore
        )
        start = self._window_start(mark)
        if start is not None:
            stmt = stmt.where(ChatMessage.read_at > start)
        return session.exec(stmt).all()

    def prime(self, session: Session) -> None:
        """Start watching from the current end of the tables."""
        self.conversation_mark = session.exec(select(func.max(ChatConversation.updated_at))).one()
        self.message_mark = session.exec(select(func.max(ChatMessage.message_id))).one() or 0
        self.read_mark = session.exec(select(func.max(ChatMessage.read_at))).one()

        self._known_conversations = set(session.exec(select(ChatConversation.conversation_id)).all())
        self._seen_conversations = {
            (conv.conversation_id, as_utc(conv.updated_at))
            for conv, _, _ in self._conversations_since(session, self.conversation_mark)
        }
        self._seen_reads = {
            (msg.message_id, as_utc(msg.read_at)) for msg in self._reads_since(session, self.read_mark, self.message_mark)
        }
        self.primed = True

    def _prune(self) -> None:
        conversation_start = self._window_start(self.conversation_mark)
        if conversation_start is not None:
            self._seen_conversations = {k for k in self._seen_conversations if k[1] > conversation_start}
        read_start = self._window_start(self.read_mark)
        if read_start is not None:
            self._seen_reads = {k for k in self._seen_reads if k[1] > read_start}

    def poll(self, session: Session) -> int:
        """Publish every row changed since the last poll. Returns the number of events."""
        if not self.primed:
            self.prime(session)
            return 0

        published = 0
        for conv, user, profile in self._conversations_since(session, self.conversation_mark):
            updated_at = as_utc(conv.updated_at)
            key = (conv.conversation_id, updated_at)
            if key in self._seen_conversations:
                continue
            self._seen_conversations.add(key)
            is_new = conv.conversation_id not in self._known_conversations
            self._known_conversations.add(conv.conversation_id)  # type: ignore
            self.hub.publish(
                ChangeEvent(
                    table=CONVERSATIONS_TABLE,
                    event_type=INSERT if is_new else UPDATE,
                    new=conversation_row(conv, user, profile),
                )
            )
            if self.conversation_mark is None or updated_at > as_utc(self.conversation_mark):
                self.conversation_mark = updated_at
            published += 1

        # read receipts on messages already published; newer ones go out as inserts below
        for msg in self._reads_since(session, self.read_mark, self.message_mark):
            read_at = as_utc(msg.read_at)
            key = (msg.message_id, read_at)
            if key in self._seen_reads:
                continue
            self._seen_reads.add(key)
            self.hub.publish(ChangeEvent(table=MESSAGES_TABLE, event_type=UPDATE, new=message_row(msg)))
            if self.read_mark is None or read_at > as_utc(self.read_mark):
                self.read_mark = read_at
            published += 1

        messages = session.exec(
            select(ChatMessage)
            .where(ChatMessage.message_id > self.message_mark)
            .order_by(ChatMessage.message_id)  # type: ignore
        ).all()
        for msg in messages:
            self.hub.publish(ChangeEvent(table=MESSAGES_TABLE, event_type=INSERT, new=message_row(msg)))
            self.message_mark = msg.message_id  # type: ignore
            if msg.read_at is not None:
                read_at = as_utc(msg.read_at)
                self._seen_reads.add((msg.message_id, read_at))  # type: ignore
                if self.read_mark is None or read_at > as_utc(self.read_mark):
                    self.read_mark = read_at
            published += 1

        self._prune()
        if published:
            logger.debug(f"Change feed published {published} events")
        return published


async def change_feed_loop(hub: RealtimeHub, interval: float) -> None:
    """Poll forever. Errors are logged and the next tick tries again."""
    logger.info(f"Change feed started (every {interval}s)")
    feed = ChangeFeed(hub)

    while True:
        try:
            with database.session_scope() as session:
                feed.poll(session)
        except Exception as e:
            logger.error(f"Change feed error: {e}")

        await asyncio.sleep(interval)
