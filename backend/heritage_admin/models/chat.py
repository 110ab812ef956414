"""Conversation and message rows of the staff/end-user chat."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

SENDER_USER = "user"
SENDER_STAFF = "executive"
SENDER_SYSTEM = "system"

STATUS_ACTIVE = "active"
STATUS_CLOSED = "closed"


class ChatConversation(SQLModel, table=True):
    __tablename__ = "heritage_chat_conversations"

    conversation_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="heritage_user.user_id", index=True)
    executive_id: Optional[int] = Field(default=None, foreign_key="heritage_user.user_id")
    conversation_type: str = Field(default="executive")
    status: str = Field(default=STATUS_ACTIVE, index=True)  # active | closed
    priority: Optional[str] = None
    last_message_at: Optional[datetime] = Field(default=None, index=True)
    last_message_text: Optional[str] = None
    unread_count_user: int = Field(default=0)
    unread_count_executive: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    closed_at: Optional[datetime] = None


class ChatMessage(SQLModel, table=True):
    __tablename__ = "heritage_chat_messages"

    message_id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="heritage_chat_conversations.conversation_id", index=True)
    sender_id: int
    sender_type: str  # "user" | "executive" | "system"
    sender_name: Optional[str] = None
    message_text: str = ""
    message_type: str = Field(default="text")
    attachment_url: Optional[str] = None
    is_read: bool = Field(default=False)
    read_at: Optional[datetime] = None
    is_deleted: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
