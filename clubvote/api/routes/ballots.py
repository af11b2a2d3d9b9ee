"""Ballot submission dispatch."""
from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from clubvote.api.deps import get_db_session, get_notification_sender
from clubvote.core.config import get_settings
from clubvote.schemas import BallotSubmissionEvent, SubmissionOutcomeResponse, SubmissionPayload
from clubvote.services.errors import ResultsDocumentMissingError
from clubvote.services.notifications import NotificationSender
from clubvote.services.submissions import BallotSubmissionHandler
from clubvote.services.triggers import TriggerRegistry

router = APIRouter(prefix="/ballots")


def verify_webhook_secret(x_webhook_secret: str | None = Header(default=None)) -> None:
    expected = get_settings().webhook_secret
    if not expected or not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post(
    "/{destination_id}/submissions",
    response_model=SubmissionOutcomeResponse,
    summary="Handle one ballot form submission",
    dependencies=[Depends(verify_webhook_secret)],
)
def submit_ballot(
    destination_id: str,
    payload: SubmissionPayload,
    session: Session = Depends(get_db_session),
    sender: NotificationSender = Depends(get_notification_sender),
) -> SubmissionOutcomeResponse:
    triggers = TriggerRegistry(session)
    if payload.trigger_uid:
        trigger = triggers.get_trigger(payload.trigger_uid)
        if trigger is None or trigger.source_id != destination_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Submission trigger is no longer registered",
            )
    else:
        trigger = triggers.find_for_source(destination_id)
        if trigger is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ballot is not accepting submissions",
            )

    handler = BallotSubmissionHandler(session, sender=sender)
    try:
        outcome = handler.on_ballot_submission(
            BallotSubmissionEvent(
                source_id=destination_id,
                trigger_uid=trigger.id,
                named_values=payload.named_values,
            )
        )
    except ResultsDocumentMissingError as exc:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return SubmissionOutcomeResponse(
        accepted=outcome.accepted,
        reason=outcome.reason.value if outcome.reason else None,
        voter_email=outcome.voter_email or None,
    )


__all__ = ["router", "submit_ballot", "verify_webhook_secret"]
