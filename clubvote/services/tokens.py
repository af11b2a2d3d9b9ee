"""One-time voting token storage."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from clubvote.models import VotingToken

logger = logging.getLogger(__name__)


class TokenStore:
    """Issues and consumes single-use tokens scoped to a results destination."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def issue_token(self, email: str, destination_id: str) -> VotingToken:
        token = VotingToken(token=str(uuid.uuid4()), email=email, destination_id=destination_id)
        self._session.add(token)
        self._session.flush()
        return token

    def consume_one_time_token(self, token: str | None, destination_id: str | None = None) -> str | None:
        """Return the bound email and burn the token, or ``None`` if it cannot be redeemed."""

        if not token or not isinstance(token, str):
            return None
        record = self._session.get(VotingToken, token.strip())
        if record is None:
            return None
        if destination_id is not None and record.destination_id != destination_id:
            logger.warning(
                "token presented to the wrong ballot",
                extra={"destination_id": destination_id},
            )
            return None
        if record.used:
            return None
        record.used = True
        self._session.flush()
        return record.email

    def tokens_for_destination(self, destination_id: str) -> list[VotingToken]:
        return list(
            self._session.scalars(
                select(VotingToken).where(VotingToken.destination_id == destination_id)
            ).all()
        )

    def delete_all_tokens_for_destination(self, destination_id: str) -> int:
        result = self._session.execute(
            delete(VotingToken).where(VotingToken.destination_id == destination_id)
        )
        self._session.flush()
        return int(result.rowcount or 0)


__all__ = ["TokenStore"]
