"""Initial schema for holders and position snapshots.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Holders table
    op.create_table(
        "holders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("holder_no", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("account_holder", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_holders_name", "holders", ["name"])

    # Position snapshots table (append-only; several rows per holder and date allowed)
    op.create_table(
        "position_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("holder_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("shares", sa.BigInteger(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["holder_id"], ["holders.id"]),
    )
    op.create_index("idx_position_snapshots_date", "position_snapshots", ["date"])
    op.create_index("idx_position_snapshots_holder_date", "position_snapshots", ["holder_id", "date"])


def downgrade() -> None:
    op.drop_index("idx_position_snapshots_holder_date", table_name="position_snapshots")
    op.drop_index("idx_position_snapshots_date", table_name="position_snapshots")
    op.drop_table("position_snapshots")
    op.drop_index("idx_holders_name", table_name="holders")
    op.drop_table("holders")
