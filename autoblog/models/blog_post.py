"""Generated blog posts."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from autoblog.models.base import Base, TimestampMixin, enum_column, new_id


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class BlogPost(Base, TimestampMixin):
    """A blog post produced by a generation job (or edited by hand)."""

    __tablename__ = "blog_posts"
    __table_args__ = (UniqueConstraint("website_id", "slug", name="uq_blog_posts_website_slug"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    website_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("websites.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(500))
    slug: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    excerpt: Mapped[str | None] = mapped_column(Text)
    meta_title: Mapped[str | None] = mapped_column(String(255))
    meta_description: Mapped[str | None] = mapped_column(String(500))
    focus_keyword: Mapped[str | None] = mapped_column(String(255))
    secondary_keywords: Mapped[list | None] = mapped_column(JSON)
    tags: Mapped[list | None] = mapped_column(JSON)
    category: Mapped[str | None] = mapped_column(String(100))
    featured_image: Mapped[str | None] = mapped_column(String(1024))
    featured_image_alt: Mapped[str | None] = mapped_column(String(500))
    structured_data: Mapped[dict | None] = mapped_column(JSON)
    research_data: Mapped[dict | None] = mapped_column(JSON)
    social_captions: Mapped[dict | None] = mapped_column(JSON)
    word_count: Mapped[int | None] = mapped_column(Integer)
    reading_time: Mapped[int | None] = mapped_column(Integer)

    status: Mapped[PostStatus] = mapped_column(
        enum_column(PostStatus, "poststatus"), default=PostStatus.DRAFT, index=True
    )
    scheduled_at: Mapped[datetime | None] = mapped_column()
    published_at: Mapped[datetime | None] = mapped_column()
    social_published: Mapped[bool] = mapped_column(Boolean, default=False)
    generated_by: Mapped[str] = mapped_column(String(20), default="ai")
    ai_model: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<BlogPost {self.slug} status={self.status.value}>"
