"""Email notifications sent to election officers and voters."""
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from clubvote.core.config import Settings, get_settings
from clubvote.obs import NOTIFICATION_FAILURE_COUNTER
from clubvote.services.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str

    def to_json(self, *, sender: str) -> dict[str, str]:
        return {"from": sender, "to": self.to, "subject": self.subject, "body": self.body}


class NotificationSender(Protocol):
    """Protocol describing an outbound mail channel."""

    def send(self, message: EmailMessage) -> None:
        """Deliver ``message`` or raise :class:`NotificationError`."""


class HTTPNotificationSender:
    """Posts messages to the mail relay over HTTP."""

    def __init__(
        self,
        *,
        endpoint: str,
        sender: str,
        timeout_seconds: float,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._sender = sender
        self._timeout = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HTTPNotificationSender":
        settings = settings or get_settings()
        return cls(
            endpoint=settings.mail_relay_url,
            sender=settings.mail_sender,
            timeout_seconds=settings.mail_relay_timeout_seconds,
        )

    def send(self, message: EmailMessage) -> None:
        payload = message.to_json(sender=self._sender)
        try:
            if self._client is not None:
                response = self._client.post(self._endpoint, json=payload, timeout=self._timeout)
            else:
                response = httpx.post(self._endpoint, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"Mail relay rejected message '{message.subject}'") from exc


def deliver(sender: NotificationSender, message: EmailMessage, *, kind: str) -> bool:
    """Send ``message``; failures are logged and counted, never raised."""

    if not message.to:
        logger.warning("notification has no recipients", extra={"kind": kind})
        return False
    try:
        sender.send(message)
    except NotificationError as exc:
        NOTIFICATION_FAILURE_COUNTER.labels(kind=kind).inc()
        logger.warning(
            "notification failed",
            extra={"kind": kind, "recipients": message.to, "error": str(exc)},
        )
        return False
    logger.info("notification sent", extra={"kind": kind, "recipients": message.to})
    return True


def _recipients(emails: Iterable[str]) -> str:
    return ",".join(email for email in emails if email)


def election_opened_message(officers: Iterable[str], ballot_title: str, edit_url: str) -> EmailMessage:
    return EmailMessage(
        to=_recipients(officers),
        subject=f"Election '{ballot_title}' is now open",
        body=(
            f"The {ballot_title} election is now open and accepting responses. "
            f"You can view the form at: {edit_url}"
        ),
    )


def election_closed_message(
    officers: Iterable[str], ballot_title: str, edit_url: str, *, manual_count_required: bool
) -> EmailMessage:
    if manual_count_required:
        return EmailMessage(
            to=_recipients(officers),
            subject=f"Election '{ballot_title}' has closed - Manual Counting Required",
            body=(
                f"The {ballot_title} election has now closed. The form is no longer accepting "
                "responses. The results sheet contains invalid votes that must be manually "
                f"counted. You can view the form at: {edit_url}"
            ),
        )
    return EmailMessage(
        to=_recipients(officers),
        subject=f"Election '{ballot_title}' has closed",
        body=(
            f"The {ballot_title} election has now closed. The form is no longer accepting "
            "responses. All votes are valid and you can use the Form Response graph as the "
            f"results. You can view the form at: {edit_url}"
        ),
    )


def valid_vote_message(to: str, election_title: str, *, club_name: str) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject=f"{club_name} Election '{election_title}' - Vote is valid",
        body=(
            f"Your vote in the {club_name} election '{election_title}' has been successfully "
            "recorded and handled as a valid vote. Thank you for participating!"
        ),
    )


def invalid_vote_message(to: str, election_title: str, *, club_name: str) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject=f"{club_name} Election '{election_title}' - Vote invalid",
        body=(
            f"Your vote in the {club_name} election '{election_title}' was invalid (it either "
            "didn't have the necessary security token or was a duplicate vote). To ensure the "
            "integrity of the election process we will conduct a manual count, rejecting that "
            "vote. Thank you for your understanding!"
        ),
    )


def manual_count_message(
    users: Iterable[str], election_title: str, submission: Mapping[str, Any], *, reason: str
) -> EmailMessage:
    return EmailMessage(
        to=_recipients(users),
        subject=f"Election '{election_title}' - manual count needed",
        body=(
            f"In election {election_title} this vote {reason} "
            f"{json.dumps(dict(submission), default=str)}. A manual count will now be needed"
        ),
    )


__all__ = [
    "EmailMessage",
    "HTTPNotificationSender",
    "NotificationSender",
    "deliver",
    "election_closed_message",
    "election_opened_message",
    "invalid_vote_message",
    "manual_count_message",
    "valid_vote_message",
]
