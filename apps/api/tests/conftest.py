"""
Test configuration and fixtures.

Provides:
- Fresh schema per test on an in-memory SQLite database (override with
  TEST_DATABASE_URL to run against PostgreSQL)
- Tenant, property and operator fixtures plus small factories
- JWT session minting and HTTPX AsyncClient fixtures
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["TESTING"] = "1"
os.environ["OPENAI_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from guestdesk.main import app
from guestdesk.core.config import settings
from guestdesk.core.deps import COOKIE_NAME, get_db
from guestdesk.core.security import create_session_token
from guestdesk.db.base import Base
from guestdesk.db.enums import Role, SenderType
from guestdesk.db.models import (
    Analysis,
    Client,
    Message,
    Property,
    Template,
    Thread,
    User,
)
from guestdesk.db.session import SessionLocal, engine
from guestdesk.services.ai_provider import AIProvider, ChatResponse


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Session on a freshly created schema; everything is dropped afterwards."""
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_client_account(db: Session) -> Client:
    client = Client(name="Seaside Rentals")
    db.add(client)
    db.commit()
    return client


@pytest.fixture(scope="function")
def test_property(db: Session, test_client_account: Client) -> Property:
    prop = Property(
        client_id=test_client_account.id,
        name="Beach House",
        address="1 Ocean Drive",
    )
    db.add(prop)
    db.commit()
    return prop


@pytest.fixture(scope="function")
def other_property(db: Session, test_client_account: Client) -> Property:
    prop = Property(client_id=test_client_account.id, name="Mountain Cabin")
    db.add(prop)
    db.commit()
    return prop


@pytest.fixture(scope="function")
def test_template(db: Session, test_client_account: Client) -> Template:
    template = Template(
        client_id=test_client_account.id,
        name="Check-in instructions",
        body="Your door code is 1234.",
    )
    db.add(template)
    db.commit()
    return template


def _make_user(db: Session, role: Role) -> User:
    user = User(
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        name=f"Test {role.value.title()}",
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_user(db: Session) -> User:
    """Manager operator (may edit rules and run bulk decisions)."""
    return _make_user(db, Role.MANAGER)


@pytest.fixture(scope="function")
def agent_user(db: Session) -> User:
    return _make_user(db, Role.AGENT)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_thread(db: Session, test_client_account: Client, test_property: Property):
    def _make(property_: Property | None = None, guest_name: str = "Jane Guest") -> Thread:
        prop = property_ or test_property
        thread = Thread(
            client_id=prop.client_id,
            property_id=prop.id,
            guest_name=guest_name,
            guest_email="jane@example.com",
        )
        db.add(thread)
        db.commit()
        return thread

    return _make


@pytest.fixture(scope="function")
def make_message(db: Session):
    def _make(
        thread: Thread,
        text: str = "What time is check-in?",
        sender_type: SenderType = SenderType.GUEST,
    ) -> Message:
        message = Message(thread_id=thread.id, sender_type=sender_type.value, text=text)
        db.add(message)
        db.commit()
        return message

    return _make


@pytest.fixture(scope="function")
def make_analysis(db: Session):
    def _make(
        message: Message,
        intent: str = "checkin",
        risk: str = "low",
        suggested_reply: str = "Check-in is at 3pm.",
    ) -> Analysis:
        analysis = Analysis(
            message_id=message.id,
            thread_id=message.thread_id,
            intent=intent,
            risk=risk,
            urgency="normal",
            suggested_reply=suggested_reply,
            thread_summary="Guest asks about check-in.",
            confidence=0.9,
        )
        db.add(analysis)
        db.commit()
        db.refresh(message)
        return analysis

    return _make


# =============================================================================
# AI Provider Fakes
# =============================================================================

class FakeProvider(AIProvider):
    """Returns canned content, or raises the configured error."""

    def __init__(self, content: str = "", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list = []

    async def chat(self, messages, model=None, temperature=0.3, max_tokens=1000, json_response=False):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return ChatResponse(
            content=self.content,
            prompt_tokens=10,
            completion_tokens=10,
            total_tokens=20,
            model=model or "fake-model",
        )


@pytest.fixture
def fake_provider_factory():
    return FakeProvider


@pytest.fixture
def ai_enabled(monkeypatch):
    """Pretend an AI key is configured."""
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "test-key")


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def _auth_for(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    return _auth_for(test_user)


@pytest.fixture(scope="function")
def agent_auth(agent_user: User) -> TestAuth:
    return _auth_for(agent_user)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient."""
    _override_db(db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Manager AsyncClient with JWT cookie and CSRF header."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def agent_client(db: Session, agent_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Agent AsyncClient with JWT cookie and CSRF header."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={agent_auth.cookie_name: agent_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},
    ) as c:
        yield c
    app.dependency_overrides.clear()
