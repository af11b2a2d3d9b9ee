"""Election records, state evaluation and the elections registry."""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from clubvote.models import Election

logger = logging.getLogger(__name__)


class ElectionState(str, enum.Enum):
    UNOPENED = "UNOPENED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


@dataclass(slots=True)
class ElectionRecord:
    """Typed view of one registry row.

    Only ``trigger_id`` is changed by the lifecycle scan; everything else is
    owned by the external registration process.
    """

    id: str
    title: str
    start: datetime | None
    end: datetime | None
    form_edit_url: str
    election_officers: str
    trigger_id: str = ""

    @classmethod
    def from_model(cls, election: Election) -> "ElectionRecord":
        return cls(
            id=election.id,
            title=election.title.strip(),
            start=_as_utc(election.start),
            end=_as_utc(election.end),
            form_edit_url=(election.form_edit_url or "").strip(),
            election_officers=(election.election_officers or "").strip(),
            trigger_id=(election.trigger_id or "").strip(),
        )

    @property
    def officers(self) -> list[str]:
        return parse_election_officers(self.election_officers)

    @property
    def has_window(self) -> bool:
        return self.start is not None and self.end is not None


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; treat them as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def evaluate_state(election: ElectionRecord, now: datetime) -> ElectionState:
    """Compute the state of ``election`` at ``now`` from its window alone."""

    start = _as_utc(election.start)
    end = _as_utc(election.end)
    if start is None or end is None:
        return ElectionState.UNOPENED
    current = _as_utc(now)
    if start <= current <= end:
        return ElectionState.ACTIVE
    if current > end:
        return ElectionState.CLOSED
    return ElectionState.UNOPENED


def election_stats(elections: Iterable[ElectionRecord], now: datetime) -> dict[str, int]:
    stats = {"total": 0, "active": 0, "unopened": 0, "closed": 0}
    for election in elections:
        stats["total"] += 1
        stats[evaluate_state(election, now).value.lower()] += 1
    return stats


def normalize_email(email: str | None) -> str:
    if not email:
        return ""
    return email.strip().lower()


def parse_election_officers(officers: str | None) -> list[str]:
    """Split a comma separated officer list, dropping blanks."""
    if not officers:
        return []
    return [email.strip() for email in officers.split(",") if email.strip()]


class ElectionRegistry:
    """Batch reader/writer for the elections table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def read_all(self) -> list[ElectionRecord]:
        rows = self._session.scalars(select(Election).order_by(Election.created_at, Election.id)).all()
        records: list[ElectionRecord] = []
        for row in rows:
            record = ElectionRecord.from_model(row)
            if record.has_window and record.end < record.start:  # type: ignore[operator]
                logger.warning(
                    "skipping election with end before start",
                    extra={"election_id": record.id, "title": record.title},
                )
                continue
            records.append(record)
        return records

    def find_by_title(self, title: str) -> ElectionRecord | None:
        for record in self.read_all():
            if record.title == title:
                return record
        return None

    def write_all(self, records: Iterable[ElectionRecord]) -> int:
        """Overwrite the mutable fields of every record in one flush."""

        written = 0
        for record in records:
            row = self._session.get(Election, record.id)
            if row is None:
                logger.warning("election vanished before write", extra={"election_id": record.id})
                continue
            row.trigger_id = record.trigger_id
            written += 1
        self._session.flush()
        return written


__all__ = [
    "ElectionRecord",
    "ElectionRegistry",
    "ElectionState",
    "election_stats",
    "evaluate_state",
    "normalize_email",
    "parse_election_officers",
]
