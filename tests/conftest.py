from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_TRACING", "false")
os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from fastapi.testclient import TestClient
from jose import jwt  # type: ignore[import-untyped]
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clubvote.api.deps import get_db_session, get_notification_sender
from clubvote.core.config import Settings, get_settings
from clubvote.db.session import enable_sqlite_savepoints
from clubvote.main import app
from clubvote.models import Ballot, Base, Election, ResultsDocument
from clubvote.services.errors import NotificationError
from clubvote.services.notifications import EmailMessage

DATABASE_URL = "sqlite+pysqlite:///./test_suite.db"


engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class RecordingSender:
    """Notification sender that keeps every message in memory."""

    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []
        self.fail = False

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise NotificationError("mail relay unavailable")
        self.messages.append(message)

    def subjects(self) -> list[str]:
        return [message.subject for message in self.messages]


@pytest.fixture()
def settings() -> Settings:
    return get_settings()


@pytest.fixture()
def db_session() -> Iterator[Session]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture()
def make_election(db_session: Session, settings: Settings) -> Callable[..., Election]:
    """Create an election with its ballot and results document."""

    def _make(
        *,
        title: str = "Board Vote",
        edit_url: str = "ballot-A",
        start: datetime | None = datetime(2024, 1, 1, tzinfo=UTC),
        end: datetime | None = datetime(2024, 1, 31, tzinfo=UTC),
        officers: str = "officer@example.com, chair@example.com",
        published: bool = False,
        trigger_id: str = "",
        destination_id: str | None = None,
    ) -> Election:
        document = ResultsDocument(
            id=destination_id or f"dest-{edit_url}",
            name=f"{title}{settings.results_suffix}",
            editors=["officer@example.com"],
            viewers=["auditor@example.com", "officer@example.com"],
        )
        db_session.add(document)
        db_session.flush()
        db_session.add(
            Ballot(
                id=f"form-{edit_url}",
                edit_url=edit_url,
                title=title,
                published=published,
                accepting_responses=published,
                destination_id=document.id,
                editors=["officer@example.com"],
            )
        )
        election = Election(
            title=title,
            start=start,
            end=end,
            form_edit_url=edit_url,
            election_officers=officers,
            trigger_id=trigger_id,
        )
        db_session.add(election)
        db_session.commit()
        return election

    return _make


def make_bearer_token(settings: Settings, email: str, *, role: str = "MEMBER") -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": email,
        "role": role,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=15)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def client(db_session: Session, sender: RecordingSender) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: sender

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db_session, None)
    app.dependency_overrides.pop(get_notification_sender, None)


@pytest.fixture()
def member_headers(settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_bearer_token(settings, 'Voter@Example.com')}"}


@pytest.fixture()
def admin_headers(settings: Settings) -> dict[str, str]:
    token = make_bearer_token(settings, "officer@example.com", role=settings.election_admin_role)
    return {"Authorization": f"Bearer {token}"}
