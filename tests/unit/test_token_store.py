from __future__ import annotations

from sqlalchemy.orm import Session

from clubvote.models import VotingToken
from clubvote.services.tokens import TokenStore


def test_token_is_single_use(db_session: Session) -> None:
    store = TokenStore(db_session)
    issued = store.issue_token("voter@example.com", "dest-1")
    db_session.commit()

    assert store.consume_one_time_token(issued.token, "dest-1") == "voter@example.com"
    assert store.consume_one_time_token(issued.token, "dest-1") is None
    assert db_session.get(VotingToken, issued.token).used is True


def test_token_scoped_to_destination(db_session: Session) -> None:
    store = TokenStore(db_session)
    issued = store.issue_token("voter@example.com", "dest-1")

    assert store.consume_one_time_token(issued.token, "dest-2") is None
    assert store.consume_one_time_token(issued.token) == "voter@example.com"


def test_unknown_or_missing_tokens_are_rejected(db_session: Session) -> None:
    store = TokenStore(db_session)

    assert store.consume_one_time_token(None) is None
    assert store.consume_one_time_token("") is None
    assert store.consume_one_time_token("not-a-token") is None
    assert store.consume_one_time_token(["list"]) is None  # type: ignore[arg-type]


def test_delete_all_tokens_for_destination(db_session: Session) -> None:
    store = TokenStore(db_session)
    store.issue_token("a@example.com", "dest-1")
    store.issue_token("b@example.com", "dest-1")
    kept = store.issue_token("c@example.com", "dest-2")

    assert store.delete_all_tokens_for_destination("dest-1") == 2
    assert store.tokens_for_destination("dest-1") == []
    assert [token.token for token in store.tokens_for_destination("dest-2")] == [kept.token]
