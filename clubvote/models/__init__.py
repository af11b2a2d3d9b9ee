"""ORM models package."""
from .audit_log import AuditLog
from .ballot import Ballot, ResultRow, ResultSheet, ResultsDocument
from .base import Base, TimestampMixin
from .election import Election
from .trigger import SubmissionTrigger
from .voting_token import VotingToken

__all__ = [
    "AuditLog",
    "Ballot",
    "Base",
    "Election",
    "ResultRow",
    "ResultSheet",
    "ResultsDocument",
    "SubmissionTrigger",
    "TimestampMixin",
    "VotingToken",
]
