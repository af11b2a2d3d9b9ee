"""Schemas for ballot submission dispatch."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class BallotSubmissionEvent(BaseModel):
    source_id: str = Field(..., min_length=1, max_length=64)
    trigger_uid: str | None = Field(default=None, max_length=64)
    named_values: dict[str, Any] = Field(default_factory=dict)


class SubmissionPayload(BaseModel):
    """Body posted by the ballot platform for one form response."""

    trigger_uid: str | None = Field(default=None, max_length=64)
    named_values: dict[str, Any] = Field(default_factory=dict)


class SubmissionOutcomeResponse(BaseModel):
    accepted: bool
    reason: str | None = None
    voter_email: str | None = None


__all__ = ["BallotSubmissionEvent", "SubmissionOutcomeResponse", "SubmissionPayload"]
