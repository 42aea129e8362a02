"""Create documentation content index tables

Revision ID: 001
Revises:
Create Date: 2025-06-03

Tables:
   - content_page (page_id, path unique, title, section, created_at)
   - content_chunk (chunk_id, page_id FK, order, text)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create content_page and content_chunk."""
    op.create_table(
        "content_page",
        sa.Column("page_id", sa.Uuid(), primary_key=True),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("section", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("path", name="uq_content_page_path"),
    )
    op.create_index("idx_content_page_section", "content_page", ["section"])

    op.create_table(
        "content_chunk",
        sa.Column("chunk_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "page_id",
            sa.Uuid(),
            sa.ForeignKey("content_page.page_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.UniqueConstraint("page_id", "order", name="uq_content_chunk_page_order"),
    )
    op.create_index("idx_content_chunk_page", "content_chunk", ["page_id"])


def downgrade() -> None:
    """Drop content index tables."""
    op.drop_index("idx_content_chunk_page", table_name="content_chunk")
    op.drop_table("content_chunk")
    op.drop_index("idx_content_page_section", table_name="content_page")
    op.drop_table("content_page")
