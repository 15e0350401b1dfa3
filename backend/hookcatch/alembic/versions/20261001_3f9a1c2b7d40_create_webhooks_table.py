"""create webhooks table

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "3f9a1c2b7d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "webhooks",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=False, server_default="200"),
        sa.Column(
            "response_content_type",
            sa.String(length=1024),
            nullable=False,
            server_default="application/json",
        ),
        sa.Column(
            "response_body",
            sa.Text(),
            nullable=False,
            server_default='{"status":"ok"}',
        ),
        sa.Column("response_delay", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhooks_created_at", "webhooks", ["created_at"])
    op.create_index("ix_webhooks_updated_at", "webhooks", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_webhooks_updated_at", table_name="webhooks")
    op.drop_index("ix_webhooks_created_at", table_name="webhooks")
    op.drop_table("webhooks")
