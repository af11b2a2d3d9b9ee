"""Member-facing election listing and ballot token issuance."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.services.ballots import BallotAccessor, ResolvedBallot
from clubvote.services.elections import (
    ElectionRecord,
    ElectionRegistry,
    ElectionState,
    election_stats,
    evaluate_state,
    normalize_email,
)
from clubvote.services.errors import (
    AlreadyVotedError,
    BallotNotAcceptingError,
    ElectionNotActiveError,
    ElectionNotFoundError,
)
from clubvote.services.result_stores import ResultStoreAccessor
from clubvote.services.tokens import TokenStore

logger = logging.getLogger(__name__)


def build_election_status_message(
    state: ElectionState | str | None, has_voted: bool, ballot_accepting: bool = True
) -> str:
    if has_voted:
        return "Inactive - you've already voted"
    if state == ElectionState.UNOPENED:
        return "Inactive - election not open yet"
    if state == ElectionState.CLOSED:
        return "Inactive - election has closed"
    if state == ElectionState.ACTIVE:
        if not ballot_accepting:
            return "Inactive - ballot is not accepting responses"
        return "Active"
    return "Inactive - unknown status"


@dataclass(slots=True, frozen=True)
class BallotLink:
    election_title: str
    ballot_url: str


class ElectionDirectoryService:
    """Answers member questions about elections and hands out ballot links."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        registry: ElectionRegistry | None = None,
        ballots: BallotAccessor | None = None,
        tokens: TokenStore | None = None,
        result_stores: ResultStoreAccessor | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._registry = registry or ElectionRegistry(session)
        self._ballots = ballots or BallotAccessor(session, settings=self._settings)
        self._tokens = tokens or TokenStore(session)
        self._stores = result_stores or ResultStoreAccessor(session, settings=self._settings)

    def list_elections_for_member(self, email: str, now: datetime | None = None) -> list[dict[str, Any]]:
        now = now or datetime.now(tz=UTC)
        listing: list[dict[str, Any]] = []
        for record in self._registry.read_all():
            if not record.form_edit_url:
                continue
            resolution = self._ballots.resolve(record.form_edit_url)
            if not resolution.ok:
                logger.warning(
                    "ballot lookup failed while listing elections",
                    extra={"title": record.title, "error": str(resolution.error)},
                )
                continue
            ballot = resolution.ballot
            accepting = ballot.is_published() and ballot.is_accepting_responses()
            listing.append(
                {
                    "title": record.title or "Untitled Election",
                    "opens": record.start,
                    "closes": record.end,
                    "status": build_election_status_message(
                        evaluate_state(record, now), self._has_voted(email, ballot), accepting
                    ),
                }
            )
        return listing

    def election_stats(self, now: datetime | None = None) -> dict[str, int]:
        return election_stats(self._registry.read_all(), now or datetime.now(tz=UTC))

    def issue_ballot_token(self, email: str, title: str, now: datetime | None = None) -> BallotLink:
        now = now or datetime.now(tz=UTC)
        record = self._registry.find_by_title(title)
        if record is None:
            raise ElectionNotFoundError(f"Election '{title}' not found")
        ballot = self._ballot_for(record)
        if evaluate_state(record, now) is not ElectionState.ACTIVE:
            raise ElectionNotActiveError(f"Election '{title}' is not currently active")
        if self._has_voted(email, ballot):
            raise AlreadyVotedError("You have already voted in this election")
        if not ballot.is_published() or not ballot.is_accepting_responses():
            raise BallotNotAcceptingError("Ballot is not accepting responses")

        token = self._tokens.issue_token(normalize_email(email), ballot.get_destination_id())
        self._session.commit()
        logger.info("issued ballot token", extra={"title": title})
        return BallotLink(election_title=title, ballot_url=ballot.prefilled_url(token.token))

    def _ballot_for(self, record: ElectionRecord) -> ResolvedBallot:
        if not record.form_edit_url:
            raise ElectionNotActiveError(f"Election '{record.title}' has no ballot form")
        resolution = self._ballots.resolve(record.form_edit_url)
        if not resolution.ok or not resolution.ballot.get_destination_id():
            raise ElectionNotActiveError(f"Election '{record.title}' has no ballot form")
        return resolution.ballot

    def _has_voted(self, email: str, ballot: ResolvedBallot) -> bool:
        destination_id = ballot.get_destination_id()
        if not destination_id:
            return False
        results = self._stores.open(destination_id, self._settings.valid_results_sheet_name)
        if results is None:
            return False
        candidate = normalize_email(email)
        field = self._settings.voter_email_field
        return any(normalize_email(vote.get(field)) == candidate for vote in results.read())


__all__ = ["BallotLink", "ElectionDirectoryService", "build_election_status_message"]
