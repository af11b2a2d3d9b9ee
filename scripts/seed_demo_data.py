"""Seed script for a demo election, ballot and results document."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from clubvote.core.config import get_settings
from clubvote.db.session import SessionLocal, engine
from clubvote.models import Ballot, Base, Election, ResultsDocument

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_TITLE = "Board Vote"
DEMO_EDIT_URL = "ballot-demo"


def seed(session: Session) -> None:
    """Seed one demo election whose window opens now and lasts a week."""

    settings = get_settings()
    ballot = session.query(Ballot).filter(Ballot.edit_url == DEMO_EDIT_URL).one_or_none()
    if ballot is None:
        document = ResultsDocument(
            name=f"{DEMO_TITLE}{settings.results_suffix}",
            editors=["officer@demo.local"],
            viewers=[],
        )
        session.add(document)
        session.flush()
        ballot = Ballot(
            edit_url=DEMO_EDIT_URL,
            title=DEMO_TITLE,
            destination_id=document.id,
            editors=["officer@demo.local"],
        )
        session.add(ballot)
        logger.info("Created ballot %s", DEMO_EDIT_URL)
    else:
        logger.info("Ballot %s already exists", DEMO_EDIT_URL)

    if session.query(Election).filter(Election.title == DEMO_TITLE).one_or_none() is None:
        now = datetime.now(tz=UTC)
        session.add(
            Election(
                title=DEMO_TITLE,
                start=now,
                end=now + timedelta(days=7),
                form_edit_url=DEMO_EDIT_URL,
                election_officers="officer@demo.local",
            )
        )
        logger.info("Added election %s", DEMO_TITLE)
    else:
        logger.info("Election %s already exists", DEMO_TITLE)


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed(session)
        session.commit()


if __name__ == "__main__":
    main()
