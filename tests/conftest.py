"""
Shared pytest fixtures for all tests.

Every test gets its own in-memory SQLite database with the full schema and a
small cast: one intern assigned to a project whose PIC is the mentor, an
unassigned intern, a second mentor with no interns, and an admin.
"""

import os
import tempfile
from datetime import date, datetime, timedelta
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Keep Slack off and the database and logs out of the working tree before app.config is cached
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SLACK_BOT_TOKEN"] = ""
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="logbook-test-logs-"))

from app.database import Base  # noqa: E402
from app.models import audit, logbook, notification, project  # noqa: E402,F401
from app.models.logbook import LogbookEntry  # noqa: E402
from app.models.project import Profile, Project, ProjectParticipant  # noqa: E402
from app.services.lifecycle import Actor  # noqa: E402
from app.services.notification_service import NotificationService  # noqa: E402
from app.services.submission_gate import SubmissionGate  # noqa: E402
from app.utils.roles import Role  # noqa: E402


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def test_engine():
    """
    Fresh in-memory database per test.

    Uses StaticPool so the single connection is shared with the TestClient thread.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# PEOPLE AND PROJECTS
# =============================================================================

INTERN_ID = "intern-1"
MENTOR_ID = "mentor-1"
OTHER_MENTOR_ID = "mentor-2"
LONER_ID = "intern-2"
ADMIN_ID = "admin-1"
PROJECT_ID = "proj-1"


@pytest.fixture
def people(db_session):
    db_session.add_all([
        Profile(id=INTERN_ID, full_name="Intan Permata", role="intern", slack_user_id="U_INTERN"),
        Profile(id=LONER_ID, full_name="Budi Santoso", role="intern"),
        Profile(id=MENTOR_ID, full_name="Maya Sari", role="mentor", slack_user_id="U_MENTOR"),
        Profile(id=OTHER_MENTOR_ID, full_name="Rudi Hartono", role="mentor"),
        Profile(id=ADMIN_ID, full_name="Ayu Lestari", role="admin"),
        Project(id=PROJECT_ID, name="Data Platform"),
        ProjectParticipant(project_id=PROJECT_ID, user_id=INTERN_ID, role_in_project="member"),
        ProjectParticipant(project_id=PROJECT_ID, user_id=MENTOR_ID, role_in_project="pic"),
    ])
    db_session.commit()


@pytest.fixture
def intern(people):
    return Actor(user_id=INTERN_ID, role=Role.INTERN)


@pytest.fixture
def mentor(people):
    return Actor(user_id=MENTOR_ID, role=Role.MENTOR)


@pytest.fixture
def other_mentor(people):
    return Actor(user_id=OTHER_MENTOR_ID, role=Role.MENTOR)


@pytest.fixture
def loner(people):
    return Actor(user_id=LONER_ID, role=Role.INTERN)


@pytest.fixture
def admin(people):
    return Actor(user_id=ADMIN_ID, role=Role.ADMIN)


# =============================================================================
# SERVICES
# =============================================================================

class FakeSlackService:
    """Records DMs instead of calling the Slack API."""

    def __init__(self):
        self.sent = []

    @property
    def enabled(self):
        return True

    def send_dm(self, user_id, blocks, text=""):
        self.sent.append({"user_id": user_id, "blocks": blocks, "text": text})
        return True


@pytest.fixture
def slack():
    return FakeSlackService()


@pytest.fixture
def gate(db_session, slack):
    return SubmissionGate(db_session, NotificationService(db_session, slack))


# =============================================================================
# ENTRY HELPERS
# =============================================================================

@pytest.fixture
def make_entry(db_session):
    """Insert an entry directly, bypassing the handler."""

    def _make(user_id=INTERN_ID, category="draft", day=1, minutes=60, content="Worked on ETL job"):
        entry = LogbookEntry(
            user_id=user_id,
            project_id=PROJECT_ID,
            entry_date=date(2024, 7, day),
            start_time=datetime(2024, 7, day, 9, 0),
            end_time=datetime(2024, 7, day, 9, 0) + timedelta(minutes=minutes),
            duration_minutes=minutes,
            content=content,
            category=category,
        )
        db_session.add(entry)
        db_session.commit()
        db_session.refresh(entry)
        return entry

    return _make


@pytest.fixture
def categories(db_session):
    """Current category of every entry of one user, in insertion order."""

    def _categories(user_id=INTERN_ID):
        db_session.expire_all()
        rows = db_session.query(LogbookEntry).filter(LogbookEntry.user_id == user_id).order_by(LogbookEntry.id).all()
        return [row.category for row in rows]

    return _categories
