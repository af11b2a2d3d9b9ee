"""Election registry ORM model."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clubvote.models.base import Base, TimestampMixin


class Election(TimestampMixin, Base):
    """One row of the elections registry."""

    __tablename__ = "elections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    form_edit_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    election_officers: Mapped[str] = mapped_column(Text, nullable=False, default="")
    trigger_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")


__all__ = ["Election"]
