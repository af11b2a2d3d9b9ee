"""Common dependencies for API routes."""
from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy.orm import Session

from clubvote.db.session import SessionLocal
from clubvote.services.notifications import HTTPNotificationSender, NotificationSender


def get_db_session() -> Iterator[Session]:
    """Yield a database session for FastAPI dependencies."""

    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_notification_sender() -> NotificationSender:
    return HTTPNotificationSender.from_settings()


__all__ = ["get_db_session", "get_notification_sender"]
