"""create autobet accounts

Revision ID: 5b1f0c2a9d3e
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1f0c2a9d3e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the prepaid balance table."""
    op.create_table(
        "autobet",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop the prepaid balance table."""
    op.drop_table("autobet")
