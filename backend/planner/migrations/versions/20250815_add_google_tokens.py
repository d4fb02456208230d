"""add google token columns to users

Revision ID: 20250815_google_tokens
Revises: 20250803_daily_notes
Create Date: 2025-08-15
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = "20250815_google_tokens"
down_revision: Union[str, Sequence[str], None] = "20250803_daily_notes"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TOKEN_COLUMNS = (
    ("google_access_token", sa.Text()),
    ("google_refresh_token", sa.Text()),
    ("google_token_expiry", sa.DateTime(timezone=True)),
)


def upgrade() -> None:
    bind = op.get_bind()
    cols = {c["name"] for c in inspect(bind).get_columns("users")}

    # Add only if missing
    for name, type_ in TOKEN_COLUMNS:
        if name not in cols:
            op.add_column("users", sa.Column(name, type_, nullable=True))


def downgrade() -> None:
    bind = op.get_bind()
    cols = {c["name"] for c in inspect(bind).get_columns("users")}

    with op.batch_alter_table("users") as batch:
        for name, _ in reversed(TOKEN_COLUMNS):
            if name in cols:
                batch.drop_column(name)
