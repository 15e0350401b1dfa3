"""create vector_entries table

Revision ID: d7e0b9f14a52
Revises: 8c21e4d5a6b3
Create Date: 2026-10-08 14:20:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "d7e0b9f14a52"
down_revision = "8c21e4d5a6b3"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vector_entries",
        sa.Column("key", sa.String(length=1024), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("embedding", sa.JSON(), nullable=False),
        sa.Column("dimensions", sa.Integer(), nullable=False),
        sa.Column(
            "indexed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("vector_entries")
