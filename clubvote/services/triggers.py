"""Registry of submission triggers bound to results destinations."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.models import ResultsDocument, SubmissionTrigger
from clubvote.services.errors import TriggerError

logger = logging.getLogger(__name__)


class TriggerRegistry:
    """Creates, lists and deletes submission triggers."""

    def __init__(self, session: Session, *, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def list_triggers(self, handler_name: str | None = None) -> list[SubmissionTrigger]:
        statement = select(SubmissionTrigger).order_by(SubmissionTrigger.created_at)
        if handler_name is not None:
            statement = statement.where(SubmissionTrigger.handler_name == handler_name)
        return list(self._session.scalars(statement).all())

    def exists(self, trigger_id: str) -> bool:
        return bool(trigger_id) and self._session.get(SubmissionTrigger, trigger_id) is not None

    def get_trigger(self, trigger_id: str) -> SubmissionTrigger | None:
        return self._session.get(SubmissionTrigger, trigger_id) if trigger_id else None

    def find_for_source(self, source_id: str) -> SubmissionTrigger | None:
        return self._session.scalars(
            select(SubmissionTrigger).where(
                SubmissionTrigger.source_id == source_id,
                SubmissionTrigger.handler_name == self._settings.submission_handler_name,
            )
        ).first()

    def create_submission_trigger(self, destination_id: str | None) -> str:
        if not destination_id:
            raise TriggerError("Ballot has no results destination to attach a trigger to")
        if self._session.get(ResultsDocument, destination_id) is None:
            raise TriggerError(f"Results destination '{destination_id}' does not exist")

        trigger = SubmissionTrigger(
            handler_name=self._settings.submission_handler_name,
            source_id=destination_id,
        )
        self._session.add(trigger)
        self._session.flush()
        logger.info(
            "attached submission trigger",
            extra={"trigger_id": trigger.id, "source_id": destination_id},
        )
        return trigger.id

    def delete_trigger(self, trigger_id: str) -> bool:
        trigger = self._session.get(SubmissionTrigger, trigger_id) if trigger_id else None
        if trigger is None:
            return False
        self._session.delete(trigger)
        self._session.flush()
        logger.info(
            "removed submission trigger",
            extra={"trigger_id": trigger_id, "source_id": trigger.source_id},
        )
        return True


__all__ = ["TriggerRegistry"]
