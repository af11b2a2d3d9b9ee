"""Access to ballots by their edit reference."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.models import Ballot
from clubvote.services.errors import BallotResolutionError

logger = logging.getLogger(__name__)


class ResolvedBallot:
    """Wrapper exposing the publish state and bindings of one ballot."""

    def __init__(self, ballot: Ballot, *, settings: Settings) -> None:
        self._ballot = ballot
        self._settings = settings

    def get_id(self) -> str:
        return self._ballot.id

    def get_title(self) -> str:
        return self._ballot.title

    def get_edit_url(self) -> str:
        return self._ballot.edit_url

    def get_destination_id(self) -> str | None:
        return self._ballot.destination_id

    def get_editors(self) -> list[str]:
        return list(self._ballot.editors or [])

    def is_published(self) -> bool:
        return bool(self._ballot.published)

    def is_accepting_responses(self) -> bool:
        return bool(self._ballot.accepting_responses)

    def set_published(self, published: bool) -> None:
        # Publishing and response collection move together.
        self._ballot.published = published
        self._ballot.accepting_responses = published

    def set_accepting_responses(self, accepting: bool) -> None:
        self._ballot.accepting_responses = accepting

    def prefilled_url(self, token: str) -> str:
        query = urlencode({"usp": "pp_url", self._settings.token_field_title: token})
        base = self._settings.ballot_base_url.rstrip("/")
        return f"{base}/{self._ballot.id}/viewform?{query}"


@dataclass(slots=True, frozen=True)
class BallotResolution:
    """Outcome of resolving a ballot reference: a ballot or the reason there is none."""

    ballot: ResolvedBallot | None = None
    error: BallotResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.ballot is not None


class BallotAccessor:
    """Resolves ``FormEditUrl`` references to ballots."""

    def __init__(self, session: Session, *, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def resolve(self, ref: str | None) -> BallotResolution:
        reference = (ref or "").strip()
        if not reference:
            return BallotResolution(error=BallotResolutionError("Empty ballot reference"))
        ballot = self._session.scalars(
            select(Ballot).where(or_(Ballot.edit_url == reference, Ballot.id == reference))
        ).first()
        if ballot is None:
            return BallotResolution(
                error=BallotResolutionError(f"Ballot '{reference}' could not be found")
            )
        return BallotResolution(ballot=ResolvedBallot(ballot, settings=self._settings))


__all__ = ["BallotAccessor", "BallotResolution", "ResolvedBallot"]
