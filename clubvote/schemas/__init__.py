"""Pydantic schemas package."""

from .election import (
    BallotTokenResponse,
    ElectionStatsResponse,
    ElectionSummary,
    LifecycleReportResponse,
)
from .submission import BallotSubmissionEvent, SubmissionOutcomeResponse, SubmissionPayload

__all__ = [
    "BallotSubmissionEvent",
    "BallotTokenResponse",
    "ElectionStatsResponse",
    "ElectionSummary",
    "LifecycleReportResponse",
    "SubmissionOutcomeResponse",
    "SubmissionPayload",
]
