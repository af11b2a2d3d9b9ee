"""Decision function for incoming ballot submissions."""
from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from clubvote.services.elections import normalize_email

TokenConsumer = Callable[[Any], str | None]


class RejectionReason(str, enum.Enum):
    INVALID_TOKEN = "invalid_token"
    DUPLICATE_VOTER = "duplicate_voter"


@dataclass(slots=True, frozen=True)
class VoteValidation:
    email: str = ""
    reason: RejectionReason | None = None

    @property
    def valid(self) -> bool:
        return self.reason is None

    def __bool__(self) -> bool:
        return self.valid


def normalize_submission(named_values: Mapping[str, Any]) -> dict[str, Any]:
    """Collapse single-answer lists to their scalar value."""

    normalized: dict[str, Any] = {}
    for question, answer in named_values.items():
        if isinstance(answer, (list, tuple)) and len(answer) == 1:
            normalized[question] = answer[0]
        else:
            normalized[question] = answer
    return normalized


def _comparable(email: Any, case_insensitive: bool) -> str:
    if not isinstance(email, str):
        return ""
    return normalize_email(email) if case_insensitive else email


def validate_vote(
    submission: MutableMapping[str, Any],
    existing_votes: Iterable[Mapping[str, Any]],
    consume_token: TokenConsumer,
    *,
    token_field: str,
    voter_email_field: str,
    case_insensitive: bool = True,
) -> VoteValidation:
    """Validate ``submission`` in place.

    The token is consumed before the duplicate check, so a rejected duplicate
    still burns its token. On return the token field is gone and the voter
    email field holds the resolved address (or ``""``).
    """

    submission[voter_email_field] = ""
    email = consume_token(submission.get(token_field))
    submission.pop(token_field, None)
    if not email:
        return VoteValidation(reason=RejectionReason.INVALID_TOKEN)

    submission[voter_email_field] = email
    candidate = _comparable(email, case_insensitive)
    for vote in existing_votes:
        if _comparable(vote.get(voter_email_field), case_insensitive) == candidate:
            return VoteValidation(email=email, reason=RejectionReason.DUPLICATE_VOTER)
    return VoteValidation(email=email)


def is_valid(
    submission: MutableMapping[str, Any],
    existing_votes: Iterable[Mapping[str, Any]],
    consume_token: TokenConsumer,
    **options: Any,
) -> bool:
    return validate_vote(submission, existing_votes, consume_token, **options).valid


__all__ = [
    "RejectionReason",
    "TokenConsumer",
    "VoteValidation",
    "is_valid",
    "normalize_submission",
    "validate_vote",
]
