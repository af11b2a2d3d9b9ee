"""Initial schema for elections, ballots and results."""
from __future__ import annotations

from collections.abc import Iterable

import sqlalchemy as sa
from alembic import op

revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on: Iterable[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:  # noqa: D401
    """Create election, ballot, results, trigger, token and audit tables."""

    op.create_table(
        "elections",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("start", sa.DateTime(timezone=True)),
        sa.Column("end", sa.DateTime(timezone=True)),
        sa.Column("form_edit_url", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("election_officers", sa.Text(), nullable=False, server_default=""),
        sa.Column("trigger_id", sa.String(length=64), nullable=False, server_default=""),
        *_timestamps(),
    )

    op.create_table(
        "results_documents",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("editors", sa.JSON(), nullable=False),
        sa.Column("viewers", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "ballots",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("edit_url", sa.String(length=512), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("accepting_responses", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("destination_id", sa.String(length=36), nullable=True),
        sa.Column("editors", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["destination_id"], ["results_documents.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("edit_url", name="uq_ballots_edit_url"),
    )

    op.create_table(
        "result_sheets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("document_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("needs_attention", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["document_id"], ["results_documents.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("document_id", "name", name="uq_result_sheets_document_name"),
    )

    op.create_table(
        "result_rows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sheet_id", sa.Integer(), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["sheet_id"], ["result_sheets.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_result_rows_sheet_id", "result_rows", ["sheet_id"])

    op.create_table(
        "submission_triggers",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("handler_name", sa.String(length=128), nullable=False),
        sa.Column("source_id", sa.String(length=36), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_submission_triggers_source_id", "submission_triggers", ["source_id"])

    op.create_table(
        "voting_tokens",
        sa.Column("token", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("destination_id", sa.String(length=36), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_voting_tokens_destination_id", "voting_tokens", ["destination_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("resource_type", sa.String(length=128), nullable=False),
        sa.Column("resource_id", sa.String(length=128)),
        sa.Column("payload", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])


def downgrade() -> None:  # noqa: D401
    """Drop all election tables."""

    op.drop_index("ix_audit_logs_resource_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_voting_tokens_destination_id", table_name="voting_tokens")
    op.drop_table("voting_tokens")

    op.drop_index("ix_submission_triggers_source_id", table_name="submission_triggers")
    op.drop_table("submission_triggers")

    op.drop_index("ix_result_rows_sheet_id", table_name="result_rows")
    op.drop_table("result_rows")

    op.drop_table("result_sheets")
    op.drop_table("ballots")
    op.drop_table("results_documents")
    op.drop_table("elections")
