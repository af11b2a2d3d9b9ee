"""Audit log ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clubvote.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """Captured election and voting events."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_resource_id", "resource_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(128))
    payload: Mapped[dict | None] = mapped_column(JSON)


__all__ = ["AuditLog"]
