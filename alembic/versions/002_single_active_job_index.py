"""Optional partial unique index: one active generation job per website

Only created on PostgreSQL when generation.enforce_single_active_job is
enabled in config.yml. Bulk generation queues several jobs for one website,
so the index is off by default.

Revision ID: 002_single_active_job
Revises: 001_initial
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from autoblog.config import get_config

# revision identifiers, used by Alembic.
revision: str = "002_single_active_job"
down_revision: str = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

INDEX_NAME = "uq_generation_jobs_active_website"


def _enabled() -> bool:
    return (
        op.get_bind().dialect.name == "postgresql"
        and get_config().generation.enforce_single_active_job
    )


def upgrade() -> None:
    if not _enabled():
        return
    op.create_index(
        INDEX_NAME,
        "generation_jobs",
        ["website_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('queued', 'processing')"),
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(f"DROP INDEX IF EXISTS {INDEX_NAME}")
