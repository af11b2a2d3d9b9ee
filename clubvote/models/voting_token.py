"""One-time voting token ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clubvote.models.base import Base, TimestampMixin


class VotingToken(TimestampMixin, Base):
    """Single-use credential bound to one email and one results destination."""

    __tablename__ = "voting_tokens"
    __table_args__ = (Index("ix_voting_tokens_destination_id", "destination_id"),)

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    destination_id: Mapped[str] = mapped_column(String(36), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = ["VotingToken"]
