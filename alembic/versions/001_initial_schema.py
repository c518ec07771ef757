"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "organizations",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_created_at", "organizations", ["created_at"])

    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("plan", sa.String(50), nullable=False),
        sa.Column("max_posts_per_month", sa.Integer(), nullable=False),
        sa.Column("posts_generated_this_month", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("organization_id"),
    )
    op.create_index("ix_subscriptions_created_at", "subscriptions", ["created_at"])

    op.create_table(
        "quota_usage",
        _id(),
        sa.Column("job_id", sa.String(36), nullable=False),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id"),
    )
    op.create_index("ix_quota_usage_organization_id", "quota_usage", ["organization_id"])

    op.create_table(
        "websites",
        _id(),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("subdomain", sa.String(100), nullable=True),
        sa.Column("brand_name", sa.String(255), nullable=False),
        sa.Column("niche", sa.String(255), nullable=True),
        sa.Column("target_audience", sa.String(500), nullable=True),
        sa.Column("tone", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("timezone", sa.String(50), nullable=False),
        sa.Column("owner_email", sa.String(255), nullable=True),
        sa.Column("indexnow_key", sa.String(128), nullable=True),
        sa.Column("twitter_access_token", sa.String(512), nullable=True),
        sa.Column("linkedin_access_token", sa.String(1024), nullable=True),
        sa.Column("linkedin_author_urn", sa.String(128), nullable=True),
        sa.Column("webhook_url", sa.String(512), nullable=True),
        sa.Column("webhook_secret", sa.String(255), nullable=True),
        sa.Column("ghost_config", sa.JSON(), nullable=True),
        sa.Column("shopify_config", sa.JSON(), nullable=True),
        sa.Column("cms_type", sa.String(20), nullable=True),
        sa.Column("webflow_config", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_websites_organization_id", "websites", ["organization_id"])
    op.create_index("ix_websites_created_at", "websites", ["created_at"])

    op.create_table(
        "blog_settings",
        _id(),
        sa.Column("website_id", sa.String(36), nullable=False),
        sa.Column("auto_publish", sa.Boolean(), nullable=False),
        sa.Column("content_length", sa.String(20), nullable=False),
        sa.Column("include_images", sa.Boolean(), nullable=False),
        sa.Column("include_faq", sa.Boolean(), nullable=False),
        sa.Column("publish_time", sa.String(5), nullable=True),
        sa.Column("publish_window_minutes", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("website_id"),
    )

    op.create_table(
        "keywords",
        _id(),
        sa.Column("website_id", sa.String(36), nullable=False),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("blog_post_id", sa.String(36), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_keywords_website_id", "keywords", ["website_id"])
    op.create_index("ix_keywords_status", "keywords", ["status"])
    op.create_index("ix_keywords_created_at", "keywords", ["created_at"])

    op.create_table(
        "blog_posts",
        _id(),
        sa.Column("website_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(255), nullable=True),
        sa.Column("meta_description", sa.String(500), nullable=True),
        sa.Column("focus_keyword", sa.String(255), nullable=True),
        sa.Column("secondary_keywords", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("featured_image", sa.String(1024), nullable=True),
        sa.Column("featured_image_alt", sa.String(500), nullable=True),
        sa.Column("structured_data", sa.JSON(), nullable=True),
        sa.Column("social_captions", sa.JSON(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("reading_time", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("social_published", sa.Boolean(), nullable=False),
        sa.Column("generated_by", sa.String(20), nullable=False),
        sa.Column("ai_model", sa.String(100), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("website_id", "slug", name="uq_blog_posts_website_slug"),
    )
    op.create_index("ix_blog_posts_website_id", "blog_posts", ["website_id"])
    op.create_index("ix_blog_posts_status", "blog_posts", ["status"])
    op.create_index("ix_blog_posts_created_at", "blog_posts", ["created_at"])

    op.create_table(
        "generation_jobs",
        _id(),
        sa.Column("job_type", sa.String(40), nullable=False),
        sa.Column("website_id", sa.String(36), nullable=False),
        sa.Column("keyword_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("current_step", sa.String(40), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("input", sa.JSON(), nullable=False),
        sa.Column("output", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("blog_post_id", sa.String(36), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_generation_jobs_created_at", "generation_jobs", ["created_at"])
    op.create_index(
        "ix_generation_jobs_status_created_at", "generation_jobs", ["status", "created_at"]
    )
    op.create_index(
        "ix_generation_jobs_website_status", "generation_jobs", ["website_id", "status"]
    )

    op.create_table(
        "api_keys",
        _id(),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("key_hash", sa.String(64), nullable=False),
        sa.Column("scopes", sa.JSON(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_api_keys_organization_id", "api_keys", ["organization_id"])
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)
    op.create_index("ix_api_keys_created_at", "api_keys", ["created_at"])

    op.create_table(
        "job_runs",
        _id(),
        sa.Column("schedule_id", sa.String(100), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=False),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_job_runs_schedule_id", "job_runs", ["schedule_id"])
    op.create_index("ix_job_runs_scheduled_at", "job_runs", ["scheduled_at"])


def downgrade() -> None:
    op.drop_table("job_runs")
    op.drop_table("api_keys")
    op.drop_table("generation_jobs")
    op.drop_table("blog_posts")
    op.drop_table("keywords")
    op.drop_table("blog_settings")
    op.drop_table("websites")
    op.drop_table("quota_usage")
    op.drop_table("subscriptions")
    op.drop_table("organizations")
