"""Remember the gas top-up transaction of a ledger event between retries.

Revision ID: 0002_ledger_event_top_up
Revises: 0001_initial_schema
Create Date: 2026-10-17 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002_ledger_event_top_up"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("ledger_event", sa.Column("top_up_tx", sa.String(length=128), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("ledger_event") as batch:
        batch.drop_column("top_up_tx")
