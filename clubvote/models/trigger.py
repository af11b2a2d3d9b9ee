"""Submission trigger ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clubvote.models.base import Base, TimestampMixin


class SubmissionTrigger(TimestampMixin, Base):
    """Event registration binding a results destination to a named handler."""

    __tablename__ = "submission_triggers"
    __table_args__ = (Index("ix_submission_triggers_source_id", "source_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    handler_name: Mapped[str] = mapped_column(String(128), nullable=False)
    source_id: Mapped[str] = mapped_column(String(36), nullable=False)


__all__ = ["SubmissionTrigger"]
