"""Election directory, ballot token and lifecycle routes."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from clubvote.api.deps import get_db_session, get_notification_sender
from clubvote.api.routes.auth import AuthenticatedMember, get_current_member, require_election_admin
from clubvote.schemas import (
    BallotTokenResponse,
    ElectionStatsResponse,
    ElectionSummary,
    LifecycleReportResponse,
)
from clubvote.services.directory import ElectionDirectoryService
from clubvote.services.errors import ElectionNotFoundError, TokenIssueError
from clubvote.services.lifecycle import ElectionLifecycleManager
from clubvote.services.notifications import NotificationSender

router = APIRouter(prefix="/elections")


@router.get("", response_model=list[ElectionSummary], summary="List elections for the member")
def list_elections(
    session: Session = Depends(get_db_session),
    member: AuthenticatedMember = Depends(get_current_member),
) -> list[ElectionSummary]:
    service = ElectionDirectoryService(session)
    return [ElectionSummary(**entry) for entry in service.list_elections_for_member(member.email)]


@router.get("/stats", response_model=ElectionStatsResponse, summary="Election counts by state")
def get_election_stats(
    session: Session = Depends(get_db_session),
    member: AuthenticatedMember = Depends(get_current_member),
) -> ElectionStatsResponse:
    return ElectionStatsResponse(**ElectionDirectoryService(session).election_stats())


@router.post(
    "/lifecycle/run",
    response_model=LifecycleReportResponse,
    summary="Run the election lifecycle scan now",
)
def run_lifecycle(
    session: Session = Depends(get_db_session),
    sender: NotificationSender = Depends(get_notification_sender),
    admin: AuthenticatedMember = Depends(require_election_admin),
) -> LifecycleReportResponse:
    manager = ElectionLifecycleManager(session, sender=sender)
    report = manager.manage_election_lifecycles()
    return LifecycleReportResponse(**asdict(report))


@router.post(
    "/{title}/token",
    response_model=BallotTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a one-time ballot link",
)
def issue_ballot_token(
    title: str,
    session: Session = Depends(get_db_session),
    member: AuthenticatedMember = Depends(get_current_member),
) -> BallotTokenResponse:
    service = ElectionDirectoryService(session)
    try:
        link = service.issue_ballot_token(member.email, title)
    except ElectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TokenIssueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return BallotTokenResponse(election_title=link.election_title, ballot_url=link.ballot_url)


__all__ = ["get_election_stats", "issue_ballot_token", "list_elections", "router", "run_lifecycle"]
