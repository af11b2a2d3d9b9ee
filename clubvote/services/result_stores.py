"""Per-election results and quarantine sheets."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from clubvote.core.config import Settings, get_settings
from clubvote.models import ResultRow, ResultSheet, ResultsDocument
from clubvote.services.errors import ResultsDocumentMissingError

logger = logging.getLogger(__name__)


class ResultStore:
    """Append-oriented view over one named sheet."""

    def __init__(self, session: Session, sheet: ResultSheet) -> None:
        self._session = session
        self._sheet = sheet

    @property
    def name(self) -> str:
        return self._sheet.name

    def read(self) -> list[dict[str, Any]]:
        rows = self._session.scalars(
            select(ResultRow).where(ResultRow.sheet_id == self._sheet.id).order_by(ResultRow.id)
        ).all()
        return [dict(row.answers) for row in rows]

    def append(self, row: dict[str, Any]) -> None:
        self._session.add(ResultRow(sheet_id=self._sheet.id, answers=dict(row)))
        self._session.flush()

    def write(self, rows: Iterable[dict[str, Any]]) -> None:
        self._session.execute(delete(ResultRow).where(ResultRow.sheet_id == self._sheet.id))
        for row in rows:
            self._session.add(ResultRow(sheet_id=self._sheet.id, answers=dict(row)))
        self._session.flush()


class ResultStoreAccessor:
    """Opens sheets inside a results document, creating them on request."""

    def __init__(self, session: Session, *, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def _sheet(self, destination_id: str, store_name: str) -> ResultSheet | None:
        return self._session.scalars(
            select(ResultSheet).where(
                ResultSheet.document_id == destination_id, ResultSheet.name == store_name
            )
        ).first()

    def open(self, destination_id: str, store_name: str, create_if_missing: bool = False) -> ResultStore | None:
        sheet = self._sheet(destination_id, store_name)
        if sheet is None:
            if not create_if_missing:
                return None
            if self._session.get(ResultsDocument, destination_id) is None:
                raise ResultsDocumentMissingError(f"Results document '{destination_id}' does not exist")
            sheet = ResultSheet(document_id=destination_id, name=store_name)
            self._session.add(sheet)
            self._session.flush()
            logger.info(
                "created result sheet",
                extra={"destination_id": destination_id, "sheet": store_name},
            )
        return ResultStore(self._session, sheet)

    def exists(self, destination_id: str, store_name: str) -> bool:
        return self._sheet(destination_id, store_name) is not None

    def mark_all_sheets_needing_attention(self, destination_id: str) -> None:
        sheets = self._session.scalars(
            select(ResultSheet).where(ResultSheet.document_id == destination_id)
        ).all()
        for sheet in sheets:
            sheet.needs_attention = True
        self._session.flush()

    def document_users(self, destination_id: str) -> list[str]:
        document = self._session.get(ResultsDocument, destination_id)
        if document is None:
            return []
        users: list[str] = []
        for email in [*(document.editors or []), *(document.viewers or [])]:
            if email and email not in users:
                users.append(email)
        return users

    def document_title(self, destination_id: str) -> str:
        document = self._session.get(ResultsDocument, destination_id)
        if document is None:
            return ""
        name = document.name
        suffix = self._settings.results_suffix
        if name.endswith(suffix):
            return name[: -len(suffix)].strip()
        return name


__all__ = ["ResultStore", "ResultStoreAccessor"]
