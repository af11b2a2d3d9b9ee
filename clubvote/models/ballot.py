"""Ballot and results document ORM models."""
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubvote.models.base import Base, TimestampMixin


class ResultsDocument(TimestampMixin, Base):
    """Destination a ballot writes its submissions into."""

    __tablename__ = "results_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    editors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    viewers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    sheets = relationship(
        "ResultSheet", back_populates="document", cascade="all, delete-orphan", order_by="ResultSheet.id"
    )
    ballots = relationship("Ballot", back_populates="destination")


class Ballot(TimestampMixin, Base):
    """Fillable form backing one election."""

    __tablename__ = "ballots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    edit_url: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accepting_responses: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    destination_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("results_documents.id", ondelete="SET NULL"), nullable=True
    )
    editors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    destination = relationship("ResultsDocument", back_populates="ballots")


class ResultSheet(Base):
    """Named sheet inside a results document."""

    __tablename__ = "result_sheets"
    __table_args__ = (
        UniqueConstraint("document_id", "name", name="uq_result_sheets_document_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("results_documents.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    needs_attention: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    document = relationship("ResultsDocument", back_populates="sheets")
    rows = relationship(
        "ResultRow", back_populates="sheet", cascade="all, delete-orphan", order_by="ResultRow.id"
    )


class ResultRow(Base):
    """Single appended submission; ordering follows the integer id."""

    __tablename__ = "result_rows"
    __table_args__ = (Index("ix_result_rows_sheet_id", "sheet_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sheet_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("result_sheets.id", ondelete="CASCADE"), nullable=False
    )
    answers: Mapped[dict] = mapped_column(JSON, nullable=False)

    sheet = relationship("ResultSheet", back_populates="rows")


__all__ = ["Ballot", "ResultRow", "ResultSheet", "ResultsDocument"]
