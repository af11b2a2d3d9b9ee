from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

import pytest
from sqlalchemy.orm import Session

from clubvote.core.config import Settings
from clubvote.models import AuditLog, Ballot, Election, ResultsDocument, SubmissionTrigger, VotingToken
from clubvote.services.elections import ElectionRecord, ElectionRegistry
from clubvote.services.errors import TriggerError
from clubvote.services.lifecycle import ElectionLifecycleManager
from clubvote.services.result_stores import ResultStoreAccessor
from clubvote.services.tokens import TokenStore
from clubvote.services.triggers import TriggerRegistry

MID_JANUARY = datetime(2024, 1, 15, tzinfo=UTC)
FEBRUARY = datetime(2024, 2, 1, tzinfo=UTC)


def _manager(session: Session, sender, **kwargs) -> ElectionLifecycleManager:
    return ElectionLifecycleManager(session, sender=sender, **kwargs)


def _election(session: Session, title: str = "Board Vote") -> Election:
    return session.query(Election).filter(Election.title == title).one()


def _ballot(session: Session, edit_url: str = "ballot-A") -> Ballot:
    return session.query(Ballot).filter(Ballot.edit_url == edit_url).one()


def test_active_election_is_opened(db_session: Session, make_election, sender) -> None:
    make_election()

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    election = _election(db_session)
    assert report.opened == ["Board Vote"]
    assert report.registry_persisted is True
    assert _ballot(db_session).published is True
    assert _ballot(db_session).accepting_responses is True
    assert election.trigger_id
    assert db_session.get(SubmissionTrigger, election.trigger_id).source_id == "dest-ballot-A"
    assert sender.subjects() == ["Election 'Board Vote' is now open"]
    assert sender.messages[0].to == "officer@example.com,chair@example.com"
    assert "ballot-A" in sender.messages[0].body


def test_second_scan_is_a_no_op(db_session: Session, make_election, sender) -> None:
    make_election()
    manager = _manager(db_session, sender)
    manager.manage_election_lifecycles(now=MID_JANUARY)
    trigger_id = _election(db_session).trigger_id

    second = manager.manage_election_lifecycles(now=MID_JANUARY)

    assert second.opened == [] and second.closed == [] and second.repaired == []
    assert second.registry_persisted is False
    assert second.orphaned_triggers_removed == 0
    assert len(sender.messages) == 1
    assert db_session.query(SubmissionTrigger).count() == 1
    assert _election(db_session).trigger_id == trigger_id


def test_closed_election_is_torn_down(db_session: Session, make_election, sender) -> None:
    make_election(published=True, trigger_id="trig-123")
    db_session.add(SubmissionTrigger(id="trig-123", handler_name="ballotSubmitHandler", source_id="dest-ballot-A"))
    tokens = TokenStore(db_session)
    tokens.issue_token("a@example.com", "dest-ballot-A")
    tokens.issue_token("b@example.com", "dest-ballot-A")
    db_session.commit()

    report = _manager(db_session, sender).manage_election_lifecycles(now=FEBRUARY)

    assert report.closed == ["Board Vote"]
    assert _ballot(db_session).published is False
    assert _ballot(db_session).accepting_responses is False
    assert db_session.get(SubmissionTrigger, "trig-123") is None
    assert db_session.query(VotingToken).filter(VotingToken.destination_id == "dest-ballot-A").count() == 0
    assert _election(db_session).trigger_id == ""
    assert sender.subjects() == ["Election 'Board Vote' has closed"]
    assert "All votes are valid" in sender.messages[0].body


def test_closure_requests_manual_count_when_quarantine_exists(
    db_session: Session, make_election, sender, settings: Settings
) -> None:
    make_election(published=True, trigger_id="trig-123")
    db_session.add(SubmissionTrigger(id="trig-123", handler_name="ballotSubmitHandler", source_id="dest-ballot-A"))
    ResultStoreAccessor(db_session).open(
        "dest-ballot-A", settings.invalid_results_sheet_name, create_if_missing=True
    )
    db_session.commit()

    _manager(db_session, sender).manage_election_lifecycles(now=FEBRUARY)

    assert sender.subjects() == ["Election 'Board Vote' has closed - Manual Counting Required"]
    audit = db_session.query(AuditLog).filter(AuditLog.action == "election.closed").one()
    assert audit.payload["manual_count_required"] is True


def test_closure_tolerates_missing_trigger(db_session: Session, make_election, sender) -> None:
    make_election(published=False, trigger_id="already-gone")

    report = _manager(db_session, sender).manage_election_lifecycles(now=FEBRUARY)

    assert report.closed == ["Board Vote"]
    assert report.errors == {}
    assert _election(db_session).trigger_id == ""


def test_closed_and_torn_down_election_is_left_alone(db_session: Session, make_election, sender) -> None:
    make_election(published=False)

    report = _manager(db_session, sender).manage_election_lifecycles(now=FEBRUARY)

    assert report.closed == []
    assert report.registry_persisted is False
    assert sender.messages == []


def test_orphaned_triggers_are_removed(db_session: Session, make_election, sender, settings: Settings) -> None:
    make_election()
    db_session.add_all(
        [
            SubmissionTrigger(id="orphan", handler_name=settings.submission_handler_name, source_id="dest-gone"),
            SubmissionTrigger(id="foreign", handler_name="someOtherHandler", source_id="dest-gone"),
        ]
    )
    db_session.commit()

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    assert report.orphaned_triggers_removed == 1
    assert db_session.get(SubmissionTrigger, "orphan") is None
    assert db_session.get(SubmissionTrigger, "foreign") is not None
    assert db_session.get(SubmissionTrigger, _election(db_session).trigger_id) is not None
    assert db_session.query(AuditLog).filter(AuditLog.action == "trigger.orphan_removed").count() == 1


def test_unopened_and_unevaluable_elections(db_session: Session, make_election, sender) -> None:
    make_election(
        title="Future",
        edit_url="ballot-F",
        start=datetime(2025, 1, 1, tzinfo=UTC),
        end=datetime(2025, 2, 1, tzinfo=UTC),
    )
    make_election(title="No Dates", edit_url="ballot-N", start=None, end=None)
    window = {"start": datetime(2024, 1, 1, tzinfo=UTC), "end": datetime(2024, 1, 31, tzinfo=UTC)}
    db_session.add(Election(title="No Ballot", **window))
    db_session.add(Election(title="Deleted Ballot", form_edit_url="ballot-deleted", **window))
    db_session.commit()

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    assert sorted(report.skipped) == ["Deleted Ballot", "No Ballot", "No Dates"]
    assert report.opened == []
    assert _ballot(db_session, "ballot-F").published is False
    assert sender.messages == []


def test_published_ballot_without_live_trigger_is_repaired(db_session: Session, make_election, sender) -> None:
    make_election(published=True, trigger_id="lost-trigger")

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    trigger_id = _election(db_session).trigger_id
    assert report.repaired == ["Board Vote"]
    assert trigger_id and trigger_id != "lost-trigger"
    assert db_session.get(SubmissionTrigger, trigger_id) is not None
    assert sender.messages == []


class _FlakyTriggers(TriggerRegistry):
    def __init__(self, session: Session, failing_source: str) -> None:
        super().__init__(session)
        self._failing_source = failing_source

    def create_submission_trigger(self, destination_id: str | None) -> str:
        if destination_id == self._failing_source:
            raise TriggerError("trigger quota exceeded")
        return super().create_submission_trigger(destination_id)


def test_failed_attach_is_isolated_and_reverted(db_session: Session, make_election, sender) -> None:
    make_election(title="Broken", edit_url="ballot-B")
    make_election(title="Healthy", edit_url="ballot-H")

    manager = _manager(db_session, sender, triggers=_FlakyTriggers(db_session, "dest-ballot-B"))
    report = manager.manage_election_lifecycles(now=MID_JANUARY)

    assert report.errors == {"Broken": "trigger quota exceeded"}
    assert report.opened == ["Healthy"]
    assert _ballot(db_session, "ballot-B").published is False
    assert _election(db_session, "Broken").trigger_id == ""
    assert _ballot(db_session, "ballot-H").published is True
    assert _election(db_session, "Healthy").trigger_id
    assert sender.subjects() == ["Election 'Healthy' is now open"]


def test_ballot_without_destination_cannot_open(db_session: Session, sender) -> None:
    db_session.add(Ballot(id="form-x", edit_url="ballot-X", title="Orphan Form", editors=[]))
    db_session.add(
        Election(
            title="Orphan Form",
            form_edit_url="ballot-X",
            start=datetime(2024, 1, 1, tzinfo=UTC),
            end=datetime(2024, 1, 31, tzinfo=UTC),
        )
    )
    db_session.commit()

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    assert "Orphan Form" in report.errors
    assert _ballot(db_session, "ballot-X").published is False


def test_notification_failure_does_not_block_opening(db_session: Session, make_election, sender) -> None:
    make_election()
    sender.fail = True

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    assert report.opened == ["Board Vote"]
    assert report.errors == {}
    assert _election(db_session).trigger_id


def test_full_cycle_open_then_close(db_session: Session, make_election, sender) -> None:
    make_election()
    db_session.add(ResultsDocument(id="unused", name="Unused - Results", editors=[], viewers=[]))
    db_session.commit()
    manager = _manager(db_session, sender)

    manager.manage_election_lifecycles(now=MID_JANUARY)
    TokenStore(db_session).issue_token("voter@example.com", "dest-ballot-A")
    db_session.commit()
    report = manager.manage_election_lifecycles(now=FEBRUARY)

    assert report.closed == ["Board Vote"]
    assert db_session.query(SubmissionTrigger).count() == 0
    assert db_session.query(VotingToken).count() == 0
    assert _election(db_session).trigger_id == ""
    assert sorted(entry.action for entry in db_session.query(AuditLog)) == [
        "election.closed",
        "election.opened",
    ]


class _CollidingTriggers(TriggerRegistry):
    """Registers a trigger whose id is already taken for one destination."""

    def __init__(self, session: Session, failing_source: str) -> None:
        super().__init__(session)
        self._failing_source = failing_source

    def create_submission_trigger(self, destination_id: str | None) -> str:
        if destination_id == self._failing_source:
            self._session.add(
                SubmissionTrigger(id="taken", handler_name="ballotSubmitHandler", source_id=destination_id)
            )
            self._session.flush()
        return super().create_submission_trigger(destination_id)


def test_database_failure_is_confined_to_one_election(db_session: Session, make_election, sender) -> None:
    make_election(title="Alpha", edit_url="ballot-A")
    make_election(title="Broken", edit_url="ballot-B")
    make_election(title="Healthy", edit_url="ballot-H")
    db_session.add(SubmissionTrigger(id="taken", handler_name="someOtherHandler", source_id="elsewhere"))
    db_session.commit()
    db_session.expunge_all()

    manager = _manager(db_session, sender, triggers=_CollidingTriggers(db_session, "dest-ballot-B"))
    report = manager.manage_election_lifecycles(now=MID_JANUARY)
    db_session.expire_all()

    assert list(report.errors) == ["Broken"]
    assert sorted(report.opened) == ["Alpha", "Healthy"]
    assert _ballot(db_session, "ballot-A").published is True
    assert _ballot(db_session, "ballot-H").published is True
    assert _ballot(db_session, "ballot-B").published is False
    assert _election(db_session, "Alpha").trigger_id
    assert _election(db_session, "Healthy").trigger_id
    assert _election(db_session, "Broken").trigger_id == ""
    assert db_session.query(SubmissionTrigger).filter(SubmissionTrigger.source_id == "dest-ballot-B").count() == 0
    assert sorted(sender.subjects()) == ["Election 'Alpha' is now open", "Election 'Healthy' is now open"]
    assert db_session.query(AuditLog).filter(AuditLog.action == "election.opened").count() == 2


class _FailingRegistry(ElectionRegistry):
    def write_all(self, records: Iterable[ElectionRecord]) -> int:
        raise RuntimeError("registry unavailable")


def test_no_email_when_scan_cannot_be_persisted(db_session: Session, make_election, sender) -> None:
    make_election()

    manager = _manager(db_session, sender, registry=_FailingRegistry(db_session))
    with pytest.raises(RuntimeError, match="registry unavailable"):
        manager.manage_election_lifecycles(now=MID_JANUARY)

    assert sender.messages == []


def test_lost_trigger_id_adopts_the_live_trigger(db_session: Session, make_election, sender) -> None:
    make_election(published=True, trigger_id="")
    db_session.add(SubmissionTrigger(id="live-1", handler_name="ballotSubmitHandler", source_id="dest-ballot-A"))
    db_session.commit()
    manager = _manager(db_session, sender)

    report = manager.manage_election_lifecycles(now=MID_JANUARY)
    second = manager.manage_election_lifecycles(now=MID_JANUARY)

    assert report.repaired == ["Board Vote"]
    assert _election(db_session).trigger_id == "live-1"
    assert [trigger.id for trigger in db_session.query(SubmissionTrigger)] == ["live-1"]
    assert second.repaired == [] and second.orphaned_triggers_removed == 0
    assert sender.messages == []


def test_unrecorded_trigger_on_live_ballot_is_removed(db_session: Session, make_election, sender) -> None:
    make_election(published=True, trigger_id="recorded")
    db_session.add_all(
        [
            SubmissionTrigger(id="recorded", handler_name="ballotSubmitHandler", source_id="dest-ballot-A"),
            SubmissionTrigger(id="stray", handler_name="ballotSubmitHandler", source_id="dest-ballot-A"),
        ]
    )
    db_session.commit()

    report = _manager(db_session, sender).manage_election_lifecycles(now=MID_JANUARY)

    assert report.orphaned_triggers_removed == 1
    assert db_session.get(SubmissionTrigger, "stray") is None
    assert db_session.get(SubmissionTrigger, "recorded") is not None
    assert _election(db_session).trigger_id == "recorded"
