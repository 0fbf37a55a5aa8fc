"""Initial schema: souls, submitters, fragments, condensations, ledger outbox.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "soul",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("handle", sa.String(length=15), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("owner_address", sa.String(length=64), nullable=True),
        sa.Column("seed_summary", sa.Text(), nullable=False),
        sa.Column("profile_document", sa.Text(), nullable=False),
        sa.Column("profile_version", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=32), nullable=False),
        sa.Column("category_scores", sa.Text(), nullable=False),
        sa.Column("total_fragments", sa.Integer(), nullable=False),
        sa.Column("accepted_fragments", sa.Integer(), nullable=False),
        sa.Column("contributor_count", sa.Integer(), nullable=False),
        sa.Column("follower_count", sa.BigInteger(), nullable=False),
        sa.Column("ledger_agent_id", sa.BigInteger(), nullable=True),
        sa.Column("registration_tx", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_soul")),
        sa.UniqueConstraint("handle", name=op.f("uq_soul_handle")),
    )
    op.create_index(op.f("ix_soul_owner_address"), "soul", ["owner_address"])

    op.create_table(
        "submitter",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("api_key_hash", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("wallet_address", sa.String(length=64), nullable=True),
        sa.Column("total_submitted", sa.Integer(), nullable=False),
        sa.Column("total_accepted", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_submitter")),
        sa.UniqueConstraint("name", name=op.f("uq_submitter_name")),
        sa.UniqueConstraint("api_key_hash", name=op.f("uq_submitter_api_key_hash")),
    )

    op.create_table(
        "condensation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("soul_id", sa.Uuid(), nullable=False),
        sa.Column("version_from", sa.Integer(), nullable=False),
        sa.Column("version_to", sa.Integer(), nullable=False),
        sa.Column("fragments_merged", sa.Integer(), nullable=False),
        sa.Column("profile_document", sa.Text(), nullable=False),
        sa.Column("summary_diff", sa.Text(), nullable=False),
        sa.Column("ledger_tx", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["soul_id"], ["soul.id"], name=op.f("fk_condensation_soul_id_soul")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_condensation")),
    )
    op.create_index(
        "uq_condensation_soul_version", "condensation", ["soul_id", "version_to"], unique=True
    )

    op.create_table(
        "fragment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("soul_id", sa.Uuid(), nullable=False),
        sa.Column("submitter_id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("reject_reason", sa.Text(), nullable=True),
        sa.Column("condensation_id", sa.Uuid(), nullable=True),
        sa.Column("ledger_tx", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["condensation_id"],
            ["condensation.id"],
            name=op.f("fk_fragment_condensation_id_condensation"),
        ),
        sa.ForeignKeyConstraint(["soul_id"], ["soul.id"], name=op.f("fk_fragment_soul_id_soul")),
        sa.ForeignKeyConstraint(
            ["submitter_id"], ["submitter.id"], name=op.f("fk_fragment_submitter_id_submitter")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_fragment")),
    )
    op.create_index(
        "ix_fragment_soul_status_category", "fragment", ["soul_id", "status", "category"]
    )
    op.create_index("ix_fragment_soul_condensation", "fragment", ["soul_id", "condensation_id"])
    op.create_index("ix_fragment_soul_content_hash", "fragment", ["soul_id", "content_hash"])

    op.create_table(
        "ledger_event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("soul_id", sa.Uuid(), nullable=False),
        sa.Column("fragment_id", sa.Uuid(), nullable=True),
        sa.Column("condensation_id", sa.Uuid(), nullable=True),
        sa.Column("submitter_id", sa.Uuid(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["soul_id"], ["soul.id"], name=op.f("fk_ledger_event_soul_id_soul")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ledger_event")),
    )
    op.create_index("ix_ledger_event_status_created", "ledger_event", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_ledger_event_status_created", table_name="ledger_event")
    op.drop_table("ledger_event")
    op.drop_index("ix_fragment_soul_content_hash", table_name="fragment")
    op.drop_index("ix_fragment_soul_condensation", table_name="fragment")
    op.drop_index("ix_fragment_soul_status_category", table_name="fragment")
    op.drop_table("fragment")
    op.drop_index("uq_condensation_soul_version", table_name="condensation")
    op.drop_table("condensation")
    op.drop_table("submitter")
    op.drop_index(op.f("ix_soul_owner_address"), table_name="soul")
    op.drop_table("soul")
