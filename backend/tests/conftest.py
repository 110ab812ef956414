"""Shared test fixtures for backend tests."""

from contextlib import contextmanager
from datetime import datetime, timezone
from unittest.mock import patch

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from heritage_admin.core.config import settings
from heritage_admin.core.database import get_session
from heritage_admin.core.security import StaffContext, create_access_token
from heritage_admin.models.chat import SENDER_USER, ChatConversation, ChatMessage
from heritage_admin.models.user import HeritageUser, UserType, UserTypeTranslation
from heritage_admin.services.realtime import reset_hub

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

STAFF_PASSWORD = "heritage-pass"


def get_test_session():
    with Session(test_engine) as session:
        yield session


def make_session():
    return Session(test_engine)


def quick_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=4)).decode()


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import heritage_admin.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    reset_hub()
    yield
    reset_hub()
    SQLModel.metadata.drop_all(test_engine)


# --- Seed helpers ---


def seed_row(row):
    """Insert any table row and return it with its generated id loaded."""
    with Session(test_engine) as session:
        session.add(row)
        session.commit()
        session.refresh(row)
        return row


def seed_user_type(type_key: str, name: str | None = None, display_order: int = 0) -> int:
    with Session(test_engine) as session:
        user_type = UserType(type_key=type_key, display_order=display_order)
        session.add(user_type)
        session.commit()
        session.refresh(user_type)
        if name:
            session.add(UserTypeTranslation(user_type_id=user_type.user_type_id, language_code="EN", type_name=name))
            session.commit()
        return user_type.user_type_id  # type: ignore


def seed_user(
    full_name: str = "Ravi Tourist",
    email: str | None = "ravi@example.com",
    phone: str | None = None,
    user_type_id: int | None = None,
    password: str | None = None,
    password_hash: str | None = None,
    is_verified: bool = False,
    created_at: datetime | None = None,
) -> int:
    with Session(test_engine) as session:
        user = HeritageUser(
            full_name=full_name,
            email=email,
            phone=phone,
            user_type_id=user_type_id,
            password_hash=password_hash or (quick_hash(password) if password else None),
            is_verified=is_verified,
        )
        if created_at is not None:
            user.created_at = created_at
        session.add(user)
        session.commit()
        session.refresh(user)
        return user.user_id  # type: ignore


def seed_conversation(user_id: int, last_message_at: datetime | None = None, status: str = "active", **fields) -> int:
    with Session(test_engine) as session:
        conv = ChatConversation(user_id=user_id, last_message_at=last_message_at, status=status, **fields)
        session.add(conv)
        session.commit()
        session.refresh(conv)
        return conv.conversation_id  # type: ignore


def seed_message(
    conversation_id: int,
    sender_id: int,
    text: str,
    sender_type: str = SENDER_USER,
    created_at: datetime | None = None,
    is_read: bool = False,
) -> int:
    with Session(test_engine) as session:
        msg = ChatMessage(
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_type=sender_type,
            message_text=text,
            is_read=is_read,
            created_at=created_at or datetime.now(timezone.utc),
        )
        session.add(msg)
        session.commit()
        session.refresh(msg)
        return msg.message_id  # type: ignore


# --- Staff and clients ---


@pytest.fixture
def staff_user() -> StaffContext:
    type_id = seed_user_type("admin", "Admin")
    user_id = seed_user(
        full_name="Asha Admin",
        email="admin@heritage.test",
        phone="+919800000001",
        user_type_id=type_id,
        password=STAFF_PASSWORD,
        is_verified=True,
    )
    return StaffContext(user_id=user_id, full_name="Asha Admin", email="admin@heritage.test", role="admin")


@pytest.fixture
def staff_token(staff_user) -> str:
    token, _ = create_access_token(staff_user)
    return token


@pytest.fixture
def auth_headers(staff_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {staff_token}"}


@contextmanager
def _app_client():
    with (
        patch("heritage_admin.core.database.engine", test_engine),
        patch.object(settings, "change_feed_enabled", False),
        patch.object(settings, "auto_create_tables", False),
    ):
        from heritage_admin.main import app

        # Use FastAPI's dependency override for get_session
        app.dependency_overrides[get_session] = get_test_session

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


@pytest.fixture
def client():
    """FastAPI TestClient without credentials."""
    with _app_client() as c:
        yield c


@pytest.fixture
def staff_client(auth_headers):
    """FastAPI TestClient signed in as an admin."""
    with _app_client() as c:
        c.headers.update(auth_headers)
        yield c
