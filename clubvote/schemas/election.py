"""Schemas for election directory and lifecycle endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ElectionSummary(BaseModel):
    title: str
    opens: datetime | None = None
    closes: datetime | None = None
    status: str


class ElectionStatsResponse(BaseModel):
    total: int
    active: int
    unopened: int
    closed: int


class BallotTokenResponse(BaseModel):
    election_title: str
    ballot_url: str


class LifecycleReportResponse(BaseModel):
    opened: list[str]
    closed: list[str]
    skipped: list[str]
    repaired: list[str]
    errors: dict[str, str]
    orphaned_triggers_removed: int
    registry_persisted: bool


__all__ = [
    "BallotTokenResponse",
    "ElectionStatsResponse",
    "ElectionSummary",
    "LifecycleReportResponse",
]
