"""Handling of ballot submission events."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.models import AuditLog
from clubvote.obs import VOTES_QUARANTINED_COUNTER, VOTES_RECORDED_COUNTER, election_span
from clubvote.schemas import BallotSubmissionEvent
from clubvote.services.notifications import (
    NotificationSender,
    deliver,
    invalid_vote_message,
    manual_count_message,
    valid_vote_message,
)
from clubvote.services.result_stores import ResultStoreAccessor
from clubvote.services.tokens import TokenStore
from clubvote.services.vote_validation import (
    RejectionReason,
    VoteValidation,
    normalize_submission,
    validate_vote,
)

logger = logging.getLogger(__name__)

_REASON_TEXT = {
    RejectionReason.INVALID_TOKEN: "had an invalid or already used voting token",
    RejectionReason.DUPLICATE_VOTER: "was a duplicate vote",
}


@dataclass(slots=True)
class SubmissionOutcome:
    accepted: bool
    reason: RejectionReason | None = None
    voter_email: str = ""
    row: dict[str, Any] | None = None


class BallotSubmissionHandler:
    """Records a ballot response as a vote or diverts it to the invalid results sheet."""

    def __init__(
        self,
        session: Session,
        *,
        sender: NotificationSender,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        result_stores: ResultStoreAccessor | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._sender = sender
        self._tokens = token_store or TokenStore(session)
        self._stores = result_stores or ResultStoreAccessor(session, settings=self._settings)

    def on_ballot_submission(self, event: BallotSubmissionEvent) -> SubmissionOutcome:
        destination_id = event.source_id
        with election_span("ballot.submission", destination_id=destination_id, trigger_uid=event.trigger_uid):
            submission = normalize_submission(event.named_values)
            raw_submission = dict(submission)

            results = self._stores.open(
                destination_id, self._settings.valid_results_sheet_name, create_if_missing=True
            )
            validation = validate_vote(
                submission,
                results.read(),
                lambda token: self._tokens.consume_one_time_token(token, destination_id),
                token_field=self._settings.token_field_title,
                voter_email_field=self._settings.voter_email_field,
                case_insensitive=self._settings.voter_email_case_insensitive,
            )

            if not validation:
                return self._quarantine(destination_id, raw_submission, submission, validation)

            results.append(submission)
            self._session.commit()
            VOTES_RECORDED_COUNTER.inc()
            logger.info("vote recorded", extra={"destination_id": destination_id})

            title = self._stores.document_title(destination_id)
            deliver(
                self._sender,
                valid_vote_message(validation.email, title, club_name=self._settings.club_name),
                kind="vote_valid",
            )
            return SubmissionOutcome(accepted=True, voter_email=validation.email, row=submission)

    def _quarantine(
        self,
        destination_id: str,
        raw_submission: dict[str, Any],
        validated: dict[str, Any],
        validation: VoteValidation,
    ) -> SubmissionOutcome:
        if self._settings.quarantine_retains_token:
            row = dict(raw_submission)
            row[self._settings.voter_email_field] = validation.email
        else:
            row = dict(validated)

        quarantine = self._stores.open(
            destination_id, self._settings.invalid_results_sheet_name, create_if_missing=True
        )
        quarantine.append(row)
        self._stores.mark_all_sheets_needing_attention(destination_id)
        self._session.add(
            AuditLog(
                action="vote.quarantined",
                resource_type="ResultsDocument",
                resource_id=destination_id,
                payload={"reason": validation.reason.value, "voter_email": validation.email or None},
            )
        )
        self._session.commit()
        VOTES_QUARANTINED_COUNTER.labels(reason=validation.reason.value).inc()
        logger.warning(
            "vote quarantined",
            extra={"destination_id": destination_id, "reason": validation.reason.value},
        )

        title = self._stores.document_title(destination_id)
        deliver(
            self._sender,
            manual_count_message(
                self._stores.document_users(destination_id),
                title,
                raw_submission,
                reason=_REASON_TEXT[validation.reason],
            ),
            kind="manual_count",
        )
        if validation.email:
            deliver(
                self._sender,
                invalid_vote_message(validation.email, title, club_name=self._settings.club_name),
                kind="vote_invalid",
            )
        return SubmissionOutcome(
            accepted=False, reason=validation.reason, voter_email=validation.email, row=row
        )


__all__ = ["BallotSubmissionHandler", "SubmissionOutcome"]
