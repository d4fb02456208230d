"""widen events.location to text

Revision ID: 20250820_location_text
Revises: 20250815_google_tokens
Create Date: 2025-08-20
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20250820_location_text"
down_revision: Union[str, Sequence[str], None] = "20250815_google_tokens"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Google locations hold full addresses and meeting links
    with op.batch_alter_table("events") as batch:
        batch.alter_column(
            "location",
            existing_type=sa.String(length=255),
            type_=sa.Text(),
            existing_nullable=True,
        )


def downgrade() -> None:
    with op.batch_alter_table("events") as batch:
        batch.alter_column(
            "location",
            existing_type=sa.Text(),
            type_=sa.String(length=255),
            existing_nullable=True,
        )
