"""Initial schema — cards

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- cards (one row per printing; base id repeats across reprints) ---
    op.create_table(
        "cards",
        sa.Column("row_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(), nullable=False, comment="Card base id"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("number", sa.String(), nullable=True, comment="Set number, e.g. QCCU-JP001"),
        sa.Column(
            "rarity",
            sa.JSON().with_variant(JSONB(), "postgresql"),
            nullable=False,
            server_default=sa.text("'[]'"),
            comment="Rarity codes, e.g. [\"UR\", \"SR\"]",
        ),
        sa.PrimaryKeyConstraint("row_id"),
    )
    op.create_index("ix_cards_id", "cards", ["id"])


def downgrade() -> None:
    op.drop_index("ix_cards_id", table_name="cards")
    op.drop_table("cards")
