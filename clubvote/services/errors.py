"""Exception hierarchy shared by the election services."""
from __future__ import annotations


class ElectionError(RuntimeError):
    """Base class for election service errors."""


class BallotResolutionError(ElectionError):
    """Raised when a ballot reference no longer resolves."""


class TriggerError(ElectionError):
    """Raised when a submission trigger cannot be attached."""


class ResultsDocumentMissingError(ElectionError):
    """Raised when a results destination no longer has a document behind it."""


class NotificationError(ElectionError):
    """Raised when the mail relay rejects or cannot receive a message."""


class TokenIssueError(ElectionError):
    """Base class for refusals to hand a member a ballot token."""


class ElectionNotFoundError(TokenIssueError):
    """Raised when no election carries the requested title."""


class ElectionNotActiveError(TokenIssueError):
    """Raised when the election window does not contain the current instant."""


class BallotNotAcceptingError(TokenIssueError):
    """Raised when the ballot is unpublished or closed to responses."""


class AlreadyVotedError(TokenIssueError):
    """Raised when the member already has a recorded vote."""


__all__ = [
    "AlreadyVotedError",
    "BallotNotAcceptingError",
    "BallotResolutionError",
    "ElectionError",
    "ElectionNotActiveError",
    "ElectionNotFoundError",
    "NotificationError",
    "ResultsDocumentMissingError",
    "TokenIssueError",
    "TriggerError",
]
