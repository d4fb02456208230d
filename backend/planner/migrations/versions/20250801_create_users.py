"""create users table

Revision ID: 20250801_users
Revises:
Create Date: 2025-08-01
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20250801_users"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("google_id", sa.String(length=255), nullable=True, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])

def downgrade() -> None:
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
