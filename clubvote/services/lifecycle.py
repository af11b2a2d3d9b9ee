"""Scheduled scan that opens and closes elections."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.models import AuditLog
from clubvote.obs import (
    ELECTIONS_CLOSED_COUNTER,
    ELECTIONS_OPENED_COUNTER,
    LIFECYCLE_ERROR_COUNTER,
    ORPHANED_TRIGGERS_COUNTER,
    election_span,
)
from clubvote.services.ballots import BallotAccessor, ResolvedBallot
from clubvote.services.elections import (
    ElectionRecord,
    ElectionRegistry,
    ElectionState,
    evaluate_state,
)
from clubvote.services.notifications import (
    EmailMessage,
    NotificationSender,
    deliver,
    election_closed_message,
    election_opened_message,
)
from clubvote.services.result_stores import ResultStoreAccessor
from clubvote.services.tokens import TokenStore
from clubvote.services.triggers import TriggerRegistry

logger = logging.getLogger(__name__)

OPENED = "opened"
CLOSED = "closed"
REPAIRED = "repaired"


@dataclass(slots=True)
class LifecycleReport:
    opened: list[str] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    repaired: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    orphaned_triggers_removed: int = 0
    registry_persisted: bool = False


class ElectionLifecycleManager:
    """Drives every registered election towards the state its window implies.

    Each election runs inside its own savepoint: a failure rolls back only that
    election's changes, is logged, counted and reported, and the scan moves on.
    Emails are queued and sent once the whole scan has committed. A repeated
    scan at the same instant does nothing because every transition is guarded
    by the ballot's published flag and the stored trigger id.
    """

    def __init__(
        self,
        session: Session,
        *,
        sender: NotificationSender,
        settings: Settings | None = None,
        ballots: BallotAccessor | None = None,
        triggers: TriggerRegistry | None = None,
        tokens: TokenStore | None = None,
        result_stores: ResultStoreAccessor | None = None,
        registry: ElectionRegistry | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._sender = sender
        self._ballots = ballots or BallotAccessor(session, settings=self._settings)
        self._triggers = triggers or TriggerRegistry(session, settings=self._settings)
        self._tokens = tokens or TokenStore(session)
        self._stores = result_stores or ResultStoreAccessor(session, settings=self._settings)
        self._registry = registry or ElectionRegistry(session)
        self._outbox: list[tuple[EmailMessage, str]] = []

    def manage_election_lifecycles(self, now: datetime | None = None) -> LifecycleReport:
        now = now or datetime.now(tz=UTC)
        report = LifecycleReport()
        self._outbox = []
        with election_span("election.lifecycle_scan", now=now.isoformat()):
            records = self._registry.read_all()
            live_sources: dict[str, ElectionRecord] = {}
            dirty = False
            for record in records:
                trigger_id = record.trigger_id
                queued = len(self._outbox)
                try:
                    with self._session.begin_nested():
                        outcome = self._process(record, now, live_sources, report)
                except Exception as exc:
                    record.trigger_id = trigger_id
                    del self._outbox[queued:]
                    LIFECYCLE_ERROR_COUNTER.inc()
                    report.errors[record.title or record.id] = str(exc)
                    logger.exception(
                        "election lifecycle step failed",
                        extra={"election_id": record.id, "title": record.title},
                    )
                    continue
                if outcome == OPENED:
                    ELECTIONS_OPENED_COUNTER.inc()
                    report.opened.append(record.title)
                elif outcome == CLOSED:
                    ELECTIONS_CLOSED_COUNTER.inc()
                    report.closed.append(record.title)
                elif outcome == REPAIRED:
                    report.repaired.append(record.title)
                dirty = dirty or outcome is not None

            failed = set(report.errors)
            report.orphaned_triggers_removed = self._remove_stale_triggers(live_sources, failed)
            if dirty:
                self._registry.write_all(records)
                report.registry_persisted = True
            self._session.commit()

        outbox, self._outbox = self._outbox, []
        for message, kind in outbox:
            deliver(self._sender, message, kind=kind)

        logger.info(
            "election lifecycle scan complete",
            extra={
                "opened": len(report.opened),
                "closed": len(report.closed),
                "errors": len(report.errors),
                "orphaned_triggers_removed": report.orphaned_triggers_removed,
            },
        )
        return report

    def _process(
        self,
        record: ElectionRecord,
        now: datetime,
        live_sources: dict[str, ElectionRecord],
        report: LifecycleReport,
    ) -> str | None:
        if not record.form_edit_url or not record.has_window:
            logger.info("election cannot be evaluated", extra={"title": record.title})
            report.skipped.append(record.title)
            return None

        resolution = self._ballots.resolve(record.form_edit_url)
        if not resolution.ok:
            logger.warning(
                "ballot could not be resolved",
                extra={"title": record.title, "error": str(resolution.error)},
            )
            report.skipped.append(record.title)
            return None
        ballot = resolution.ballot

        state = evaluate_state(record, now)
        if state is ElectionState.ACTIVE:
            destination_id = ballot.get_destination_id()
            if destination_id:
                live_sources[destination_id] = record
            if not ballot.is_published():
                self._open(record, ballot)
                return OPENED
            if not self._triggers.exists(record.trigger_id):
                self._repair(record, destination_id)
                return REPAIRED
            return None

        if state is ElectionState.CLOSED and (ballot.is_published() or record.trigger_id):
            self._close(record, ballot)
            return CLOSED
        return None

    def _open(self, record: ElectionRecord, ballot: ResolvedBallot) -> None:
        if record.trigger_id:
            self._triggers.delete_trigger(record.trigger_id)
        ballot.set_published(True)
        try:
            trigger_id = self._triggers.create_submission_trigger(ballot.get_destination_id())
        except Exception:
            ballot.set_published(False)
            raise
        record.trigger_id = trigger_id
        self._record_audit("election.opened", record, trigger_id=trigger_id)
        self._outbox.append(
            (
                election_opened_message(record.officers, ballot.get_title(), ballot.get_edit_url()),
                "election_opened",
            )
        )

    def _repair(self, record: ElectionRecord, destination_id: str | None) -> None:
        existing = self._triggers.find_for_source(destination_id) if destination_id else None
        if existing is not None:
            record.trigger_id = existing.id
            logger.warning(
                "adopted unrecorded submission trigger",
                extra={"title": record.title, "trigger_id": record.trigger_id},
            )
            return
        record.trigger_id = self._triggers.create_submission_trigger(destination_id)
        logger.warning(
            "reattached missing submission trigger",
            extra={"title": record.title, "trigger_id": record.trigger_id},
        )

    def _close(self, record: ElectionRecord, ballot: ResolvedBallot) -> None:
        ballot.set_published(False)
        if record.trigger_id and not self._triggers.delete_trigger(record.trigger_id):
            logger.warning(
                "submission trigger already removed",
                extra={"title": record.title, "trigger_id": record.trigger_id},
            )

        destination_id = ballot.get_destination_id()
        manual_count_required = False
        if destination_id:
            revoked = self._tokens.delete_all_tokens_for_destination(destination_id)
            logger.info(
                "revoked outstanding voting tokens",
                extra={"title": record.title, "tokens": revoked},
            )
            manual_count_required = self._stores.exists(
                destination_id, self._settings.invalid_results_sheet_name
            )

        self._record_audit(
            "election.closed",
            record,
            trigger_id=record.trigger_id or None,
            manual_count_required=manual_count_required,
        )
        self._outbox.append(
            (
                election_closed_message(
                    record.officers,
                    ballot.get_title(),
                    ballot.get_edit_url(),
                    manual_count_required=manual_count_required,
                ),
                "election_closed",
            )
        )
        record.trigger_id = ""

    def _remove_stale_triggers(self, live_sources: dict[str, ElectionRecord], failed: set[str]) -> int:
        """Delete handler triggers that no active election records as its own."""
        removed = 0
        for trigger in self._triggers.list_triggers(self._settings.submission_handler_name):
            owner = live_sources.get(trigger.source_id)
            if owner is not None:
                # A failed election's destination keeps whatever triggers it has.
                if trigger.id == owner.trigger_id or (owner.title or owner.id) in failed:
                    continue
            trigger_id, source_id = trigger.id, trigger.source_id
            if self._triggers.delete_trigger(trigger_id):
                removed += 1
                ORPHANED_TRIGGERS_COUNTER.inc()
                self._session.add(
                    AuditLog(
                        action="trigger.orphan_removed",
                        resource_type="SubmissionTrigger",
                        resource_id=trigger_id,
                        payload={"source_id": source_id, "live_source": owner is not None},
                    )
                )
        return removed

    def _record_audit(self, action: str, record: ElectionRecord, **payload: object) -> None:
        self._session.add(
            AuditLog(
                action=action,
                resource_type="Election",
                resource_id=record.id,
                payload={"title": record.title, **payload},
            )
        )


__all__ = ["ElectionLifecycleManager", "LifecycleReport"]
