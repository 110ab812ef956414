"""Conversations and messages between end users and staff."""

import logging
from typing import Any

from sqlalchemy import func
from sqlmodel import select

from heritage_admin.core.errors import NotFoundError, ValidationError
from heritage_admin.core.security import StaffContext
from heritage_admin.models.chat import (
    SENDER_STAFF,
    SENDER_USER,
    STATUS_ACTIVE,
    STATUS_CLOSED,
    ChatConversation,
    ChatMessage,
)
from heritage_admin.models.user import HeritageUser, UserProfile
from heritage_admin.services.base import TableService
from heritage_admin.services.realtime import INSERT, UPDATE
from heritage_admin.utils.dates import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)

CONVERSATIONS_TABLE = ChatConversation.__tablename__
MESSAGES_TABLE = ChatMessage.__tablename__


def conversation_row(
    conv: ChatConversation, user: HeritageUser | None = None, profile: UserProfile | None = None
) -> dict[str, Any]:
    return {
        "conversation_id": conv.conversation_id,
        "user_id": conv.user_id,
        "executive_id": conv.executive_id,
        "conversation_type": conv.conversation_type,
        "status": conv.status,
        "priority": conv.priority,
        "last_message_at": isoformat(conv.last_message_at),
        "last_message_text": conv.last_message_text,
        "unread_count_user": conv.unread_count_user,
        "unread_count_executive": conv.unread_count_executive,
        "created_at": isoformat(conv.created_at),
        "updated_at": isoformat(conv.updated_at),
        "closed_at": isoformat(conv.closed_at),
        "user_name": (user.full_name if user else None) or "Unknown User",
        "user_email": (user.email if user else None) or "",
        "user_avatar_url": profile.avatar_url if profile else None,
    }


def message_row(msg: ChatMessage) -> dict[str, Any]:
    return {
        "message_id": msg.message_id,
        "conversation_id": msg.conversation_id,
        "sender_id": msg.sender_id,
        "sender_type": msg.sender_type,
        "sender_name": msg.sender_name,
        "message_text": msg.message_text,
        "message_type": msg.message_type,
        "attachment_url": msg.attachment_url,
        "is_read": msg.is_read,
        "read_at": isoformat(msg.read_at),
        "created_at": isoformat(msg.created_at),
    }


class ChatService(TableService):

    def _with_user(self):
        return (
            select(ChatConversation, HeritageUser, UserProfile)
            .join(HeritageUser, HeritageUser.user_id == ChatConversation.user_id, isouter=True)  # type: ignore
            .join(UserProfile, UserProfile.user_id == ChatConversation.user_id, isouter=True)  # type: ignore
        )

    def _row(self, conv: ChatConversation) -> dict[str, Any]:
        user = self.session.get(HeritageUser, conv.user_id)
        profile = self.session.exec(select(UserProfile).where(UserProfile.user_id == conv.user_id)).first()
        return conversation_row(conv, user, profile)

    def _get(self, conversation_id: int) -> ChatConversation:
        with self.backend_call("fetch conversation"):
            conv = self.session.get(ChatConversation, conversation_id)
        if not conv:
            raise NotFoundError("Conversation not found")
        return conv

    # --- Conversation list ---

    def list_active_conversations(self) -> list[dict[str, Any]]:
        with self.backend_call("fetch conversations"):
            rows = self.session.exec(
                self._with_user()
                .where(ChatConversation.status == STATUS_ACTIVE)
                .order_by(
                    ChatConversation.last_message_at.desc().nulls_last(),  # type: ignore
                    ChatConversation.conversation_id.desc(),  # type: ignore
                )
            ).all()
        return [conversation_row(conv, user, profile) for conv, user, profile in rows]

    def get_conversation(self, conversation_id: int) -> dict[str, Any]:
        return self._row(self._get(conversation_id))

    def count_active_conversations(self) -> int:
        with self.backend_call("count conversations"):
            return self.session.exec(
                select(func.count()).select_from(ChatConversation).where(ChatConversation.status == STATUS_ACTIVE)
            ).one()

    def count_unread_for_staff(self) -> int:
        with self.backend_call("count unread messages"):
            total = self.session.exec(
                select(func.coalesce(func.sum(ChatConversation.unread_count_executive), 0)).where(
                    ChatConversation.status == STATUS_ACTIVE
                )
            ).one()
        return int(total)

    def create_or_get_conversation(self, user_id: int, conversation_type: str = "executive") -> dict[str, Any]:
        with self.backend_call("fetch conversation"):
            if self.session.get(HeritageUser, user_id) is None:
                logger.warning(f"Conversation requested for missing user {user_id}")
                raise NotFoundError("User not found")
            conv = self.session.exec(
                select(ChatConversation).where(
                    ChatConversation.user_id == user_id,
                    ChatConversation.conversation_type == conversation_type,
                    ChatConversation.status == STATUS_ACTIVE,
                )
            ).first()
        if conv:
            return self._row(conv)

        conv = ChatConversation(user_id=user_id, conversation_type=conversation_type)
        self.save("create conversation", conv)
        row = self._row(conv)
        self.publish(CONVERSATIONS_TABLE, INSERT, row)
        logger.info(f"Created conversation {conv.conversation_id} for user {user_id}")
        return row

    def assign_conversation(self, staff: StaffContext, conversation_id: int) -> dict[str, Any]:
        conv = self._get(conversation_id)
        conv.executive_id = staff.user_id
        conv.updated_at = utcnow()
        self.save("assign conversation", conv)
        row = self._row(conv)
        self.publish(CONVERSATIONS_TABLE, UPDATE, row)
        return row

    def close_conversation(self, conversation_id: int) -> dict[str, Any]:
        conv = self._get(conversation_id)
        if conv.status == STATUS_CLOSED:
            return self._row(conv)
        now = utcnow()
        conv.status = STATUS_CLOSED
        conv.closed_at = now
        conv.updated_at = now
        self.save("close conversation", conv)
        row = self._row(conv)
        self.publish(CONVERSATIONS_TABLE, UPDATE, row)
        return row

    # --- Message thread ---

    def get_messages(self, conversation_id: int, limit: int = 50) -> list[dict[str, Any]]:
        """The `limit` most recent non-deleted messages, oldest first."""
        self._get(conversation_id)
        with self.backend_call("fetch messages"):
            recent = self.session.exec(
                select(ChatMessage)
                .where(ChatMessage.conversation_id == conversation_id, ChatMessage.is_deleted == False)  # noqa: E712
                .order_by(ChatMessage.created_at.desc(), ChatMessage.message_id.desc())  # type: ignore
                .limit(limit)
            ).all()
        return [message_row(m) for m in reversed(recent)]

    def send_message(
        self,
        staff: StaffContext,
        conversation_id: int,
        text: str,
        message_type: str = "text",
        attachment_url: str | None = None,
    ) -> dict[str, Any]:
        body = (text or "").strip()
        if not body and not attachment_url:
            raise ValidationError("Message text cannot be empty")

        conv = self._get(conversation_id)
        if conv.status != STATUS_ACTIVE:
            raise ValidationError("Conversation is closed")

        with self.backend_call("send message"):
            sender = self.session.get(HeritageUser, staff.user_id)
            previous = self.session.exec(
                select(func.max(ChatMessage.created_at)).where(ChatMessage.conversation_id == conversation_id)
            ).one()

        sender_name = (sender.full_name or sender.email or sender.phone) if sender else None
        now = utcnow()
        # never earlier than the thread's last message, whatever the clocks say
        created_at = max(now, as_utc(previous)) if previous else now

        msg = ChatMessage(
            conversation_id=conversation_id,
            sender_id=staff.user_id,
            sender_type=SENDER_STAFF,
            sender_name=sender_name or staff.display_name,
            message_text=body,
            message_type=message_type,
            attachment_url=attachment_url,
            created_at=created_at,
        )
        conv.last_message_at = created_at
        conv.last_message_text = body or attachment_url
        conv.unread_count_user += 1
        conv.updated_at = now
        self.save("send message", msg, conv)

        row = message_row(msg)
        self.publish(MESSAGES_TABLE, INSERT, row)
        self.publish(CONVERSATIONS_TABLE, UPDATE, self._row(conv))
        return row

    def mark_messages_read(self, staff: StaffContext, conversation_id: int) -> int:
        """Mark every unread end-user message in the conversation as read by staff."""
        conv = self._get(conversation_id)
        with self.backend_call("mark messages as read"):
            unread = self.session.exec(
                select(ChatMessage).where(
                    ChatMessage.conversation_id == conversation_id,
                    ChatMessage.sender_type == SENDER_USER,
                    ChatMessage.is_read == False,  # noqa: E712
                )
            ).all()
        if not unread:
            return 0

        now = utcnow()
        for msg in unread:
            msg.is_read = True
            msg.read_at = now
        conv.unread_count_executive = max(0, conv.unread_count_executive - len(unread))
        conv.updated_at = now
        self.save("mark messages as read", *unread, conv)

        for msg in unread:
            self.publish(MESSAGES_TABLE, UPDATE, message_row(msg))
        self.publish(CONVERSATIONS_TABLE, UPDATE, self._row(conv))
        logger.debug(f"Staff {staff.user_id} read {len(unread)} messages in conversation {conversation_id}")
        return len(unread)
