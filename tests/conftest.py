"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from groupmeet.core.database import get_session
from groupmeet.main import app
from groupmeet.models import AttendeeRef, Meeting, MeetingReminderToken
from groupmeet.series.creation import create_meetings

SERIES_START = datetime(2024, 1, 15, 19, 0, tzinfo=UTC)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="alice")
def alice_fixture() -> AttendeeRef:
    return AttendeeRef.user(uuid4())


@pytest.fixture(name="bob")
def bob_fixture() -> AttendeeRef:
    return AttendeeRef.placeholder(uuid4())


@pytest.fixture(name="weekly_series")
def weekly_series_fixture(session: Session, alice: AttendeeRef, bob: AttendeeRef) -> list[Meeting]:
    """Four weekly meetings from 2024-01-15 19:00 UTC, with two attendees invited."""
    return create_meetings(
        session,
        group_id=uuid4(),
        title="Book Club",
        start=SERIES_START,
        recurrence="weekly",
        count=4,
        created_by=uuid4(),
        attendees=[alice, bob],
    )


@pytest.fixture(name="standalone_meeting")
def standalone_meeting_fixture(session: Session, alice: AttendeeRef) -> Meeting:
    """A one-off meeting two days from now."""
    [meeting] = create_meetings(
        session,
        group_id=uuid4(),
        title="Planning Session",
        start=datetime.now(UTC) + timedelta(hours=48),
        created_by=uuid4(),
        attendees=[alice],
    )
    return meeting


@pytest.fixture(name="reminder_token")
def reminder_token_fixture(session: Session, standalone_meeting: Meeting) -> MeetingReminderToken:
    """A token issued and sent for the standalone meeting."""
    token = MeetingReminderToken(
        meeting_id=standalone_meeting.id,
        leader_id=standalone_meeting.created_by,
        token="a" * 64,
        expires_at=datetime.now(UTC) + timedelta(days=7),
        reminder_sent_at=datetime.now(UTC),
    )
    session.add(token)
    session.commit()
    session.refresh(token)
    return token
