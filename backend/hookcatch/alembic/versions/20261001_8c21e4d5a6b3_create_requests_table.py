"""create requests table

Revision ID: 8c21e4d5a6b3
Revises: 3f9a1c2b7d40
Create Date: 2026-10-01 09:05:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "8c21e4d5a6b3"
down_revision = "3f9a1c2b7d40"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "requests",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("webhook_id", sa.String(length=36), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("headers", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("query_params", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("body_encoding", sa.String(length=16), nullable=False, server_default="utf-8"),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("platform_metadata", sa.Text(), nullable=False, server_default="{}"),
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
        sa.ForeignKeyConstraint(["webhook_id"], ["webhooks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_requests_webhook_id", "requests", ["webhook_id"])
    op.create_index("ix_requests_created_at", "requests", ["created_at"])
    op.create_index("ix_requests_updated_at", "requests", ["updated_at"])
    op.create_index("ix_requests_method", "requests", ["method"])
    op.create_index("ix_requests_url", "requests", ["url"])
    op.create_index("ix_requests_ip_address", "requests", ["ip_address"])


def downgrade() -> None:
    op.drop_index("ix_requests_ip_address", table_name="requests")
    op.drop_index("ix_requests_url", table_name="requests")
    op.drop_index("ix_requests_method", table_name="requests")
    op.drop_index("ix_requests_updated_at", table_name="requests")
    op.drop_index("ix_requests_created_at", table_name="requests")
    op.drop_index("ix_requests_webhook_id", table_name="requests")
    op.drop_table("requests")
