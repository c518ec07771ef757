"""Add research_data column to blog_posts

Revision ID: 003_add_post_research_data
Revises: 002_single_active_job
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003_add_post_research_data"
down_revision: str = "002_single_active_job"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("blog_posts", sa.Column("research_data", sa.JSON(), nullable=True))


def downgrade() -> None:
    op.drop_column("blog_posts", "research_data")
