"""create daily_notes table

Revision ID: 20250803_daily_notes
Revises: 20250802_events
Create Date: 2025-08-03
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20250803_daily_notes"
down_revision: Union[str, Sequence[str], None] = "20250802_events"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        "daily_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_notes_user_date"),
    )
    op.create_index("ix_daily_notes_id", "daily_notes", ["id"])
    op.create_index("ix_daily_notes_user_id", "daily_notes", ["user_id"])

def downgrade() -> None:
    op.drop_index("ix_daily_notes_user_id", table_name="daily_notes")
    op.drop_index("ix_daily_notes_id", table_name="daily_notes")
    op.drop_table("daily_notes")
