"""Tests for the chat panel: conversation list and message thread state."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session, select

from tests.conftest import make_session, seed_conversation, seed_message, seed_user, test_engine
from heritage_admin.console.chat_panel import (
    IDLE,
    LOADING,
    READY,
    ChatPanel,
    ConversationListState,
    MessageThreadState,
)
from heritage_admin.core.errors import BackendError
from heritage_admin.models.chat import SENDER_USER, ChatConversation, ChatMessage
from heritage_admin.services.chat_service import CONVERSATIONS_TABLE, MESSAGES_TABLE, ChatService
from heritage_admin.services.realtime import INSERT, UPDATE, ChangeEvent, RealtimeHub


def _ts(minutes_ago: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)).isoformat()


def _conv(conversation_id: int, last_message_at: str | None, status: str = "active") -> dict:
    return {"conversation_id": conversation_id, "last_message_at": last_message_at, "status": status}


def _msg(message_id: int, conversation_id: int = 1, text: str = "hi", is_read: bool = False) -> dict:
    return {
        "message_id": message_id,
        "conversation_id": conversation_id,
        "message_text": text,
        "sender_type": SENDER_USER,
        "is_read": is_read,
    }


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


# --- ConversationListState ---


def test_list_sorted_with_nulls_last():
    state = ConversationListState()
    state.replace([_conv(1, None), _conv(2, _ts(30)), _conv(3, _ts(5))])
    assert [c["conversation_id"] for c in state.conversations] == [3, 2, 1]


def test_update_moves_conversation_to_top():
    state = ConversationListState()
    state.replace([_conv(1, _ts(5)), _conv(2, _ts(30))])

    state.apply(ChangeEvent(table=CONVERSATIONS_TABLE, event_type=UPDATE, new=_conv(2, _ts(0))))

    assert [c["conversation_id"] for c in state.conversations] == [2, 1]


def test_insert_event_adds_and_closed_event_removes():
    state = ConversationListState()
    state.replace([_conv(1, _ts(5))])

    state.apply(ChangeEvent(table=CONVERSATIONS_TABLE, event_type=INSERT, new=_conv(2, None)))
    assert [c["conversation_id"] for c in state.conversations] == [1, 2]

    state.apply(ChangeEvent(table=CONVERSATIONS_TABLE, event_type=UPDATE, new=_conv(1, _ts(1), status="closed")))
    assert [c["conversation_id"] for c in state.conversations] == [2]


def test_fetch_failure_keeps_previous_list():
    state = ConversationListState()
    state.replace([_conv(1, _ts(5))])
    state.fail("Failed to fetch conversations")

    assert state.error == "Failed to fetch conversations"
    assert [c["conversation_id"] for c in state.conversations] == [1]


# --- MessageThreadState ---


def test_thread_states():
    thread = MessageThreadState()
    assert thread.status == IDLE
    thread.begin(1)
    assert thread.status == LOADING
    thread.loaded([])
    assert thread.status == READY
    assert thread.messages == []


def test_duplicate_insert_events_render_once():
    thread = MessageThreadState()
    thread.begin(1)
    thread.loaded([_msg(10)])

    event = ChangeEvent(table=MESSAGES_TABLE, event_type=INSERT, new=_msg(11))
    thread.apply(event)
    thread.apply(event)
    thread.apply(ChangeEvent(table=MESSAGES_TABLE, event_type=INSERT, new=_msg(10)))

    assert [m["message_id"] for m in thread.messages] == [10, 11]


def test_update_event_replaces_by_id():
    thread = MessageThreadState()
    thread.begin(1)
    thread.loaded([_msg(10), _msg(11)])

    thread.apply(ChangeEvent(table=MESSAGES_TABLE, event_type=UPDATE, new=_msg(10, is_read=True)))
    thread.apply(ChangeEvent(table=MESSAGES_TABLE, event_type=UPDATE, new=_msg(99, is_read=True)))

    assert [m["message_id"] for m in thread.messages] == [10, 11]
    assert thread.messages[0]["is_read"] is True


def test_events_for_other_conversations_ignored():
    thread = MessageThreadState()
    thread.begin(1)
    thread.loaded([])
    thread.apply(ChangeEvent(table=MESSAGES_TABLE, event_type=INSERT, new=_msg(5, conversation_id=2)))
    assert thread.messages == []


# --- ChatPanel ---


@pytest.mark.asyncio
async def test_select_empty_conversation_is_ready(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session)

    await panel.open()
    await panel.select(conv_id)

    assert panel.thread.status == READY
    assert panel.thread.messages == []
    await panel.close()


@pytest.mark.asyncio
async def test_select_marks_user_messages_read(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid, last_message_at=datetime.now(timezone.utc), unread_count_executive=2)
    seed_message(conv_id, uid, "hello")
    seed_message(conv_id, uid, "anyone there?")
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session)

    await panel.open()
    assert panel.conversations.find(conv_id)["unread_count_executive"] == 2
    await panel.select(conv_id)

    with Session(test_engine) as session:
        unread = session.exec(
            select(ChatMessage).where(
                ChatMessage.conversation_id == conv_id,
                ChatMessage.sender_type == SENDER_USER,
                ChatMessage.is_read == False,  # noqa: E712
            )
        ).all()
        assert unread == []
        assert session.get(ChatConversation, conv_id).unread_count_executive == 0
    assert panel.conversations.find(conv_id)["unread_count_executive"] == 0
    await panel.close()


@pytest.mark.asyncio
async def test_blank_send_is_noop(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session)
    await panel.select(conv_id)

    assert await panel.send("   ") is None

    with Session(test_engine) as session:
        assert session.exec(select(ChatMessage)).all() == []
    await panel.close()


@pytest.mark.asyncio
async def test_send_appends_confirmed_row_and_clears_compose(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    hub = RealtimeHub()
    panel = ChatPanel(staff_user, hub, session_factory=make_session)
    await panel.open()
    await panel.select(conv_id)

    row = await panel.send("Your tour is confirmed")
    await _settle()

    assert panel.thread.compose == ""
    assert [m["message_id"] for m in panel.thread.messages] == [row["message_id"]]
    assert panel.conversations.find(conv_id)["last_message_text"] == "Your tour is confirmed"
    await panel.close()


@pytest.mark.asyncio
async def test_send_created_at_never_goes_backwards(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    ahead = datetime.now(timezone.utc) + timedelta(minutes=3)
    seed_message(conv_id, uid, "clock skew", created_at=ahead, is_read=True)
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session)
    await panel.select(conv_id)

    first = await panel.send("one")
    second = await panel.send("two")

    stamps = [datetime.fromisoformat(m["created_at"]) for m in (first, second)]
    assert stamps[0] >= ahead
    assert stamps[1] >= stamps[0]
    await panel.close()


@pytest.mark.asyncio
async def test_inbound_message_appears_once(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    hub = RealtimeHub()
    panel = ChatPanel(staff_user, hub, session_factory=make_session)
    await panel.select(conv_id)

    msg_id = seed_message(conv_id, uid, "Is the fort open today?")
    event = ChangeEvent(table=MESSAGES_TABLE, event_type=INSERT, new=_msg(msg_id, conv_id, "Is the fort open today?"))
    hub.publish(event)
    hub.publish(event)
    await _settle()

    assert [m["message_id"] for m in panel.thread.messages] == [msg_id]
    await panel.close()


@pytest.mark.asyncio
async def test_fetch_failure_then_retry(staff_user, monkeypatch):
    uid = seed_user()
    seed_conversation(uid, last_message_at=datetime.now(timezone.utc))
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session)
    assert await panel.refresh() is True
    before = list(panel.conversations.conversations)

    def broken(self):
        raise BackendError("Failed to fetch conversations")

    original = ChatService.list_active_conversations
    monkeypatch.setattr(ChatService, "list_active_conversations", broken)
    assert await panel.refresh() is False
    assert panel.conversations.error == "Failed to fetch conversations"
    assert panel.conversations.conversations == before

    monkeypatch.setattr(ChatService, "list_active_conversations", original)
    assert await panel.refresh() is True
    assert panel.conversations.error is None


@pytest.mark.asyncio
async def test_reselect_tears_down_previous_thread(staff_user):
    uid = seed_user()
    first = seed_conversation(uid)
    second = seed_conversation(uid)
    hub = RealtimeHub()
    panel = ChatPanel(staff_user, hub, session_factory=make_session)

    await panel.select(first)
    await panel.select(second)
    assert hub.subscription_count == 1
    assert panel.thread.conversation_id == second

    await panel.close()
    assert hub.subscription_count == 0
    assert panel.thread.status == IDLE


@pytest.mark.asyncio
async def test_notify_receives_snapshots(staff_user):
    uid = seed_user()
    conv_id = seed_conversation(uid)
    seen: list[str] = []
    panel = ChatPanel(staff_user, RealtimeHub(), session_factory=make_session, notify=lambda kind, _: seen.append(kind))

    await panel.open()
    await panel.select(conv_id)

    assert seen[0] == "conversations"
    assert seen.count("thread") >= 2
    await panel.close()
