"""Customer websites and their generation / publish settings."""

from __future__ import annotations

import enum

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoblog.config import get_settings
from autoblog.models.base import Base, TimestampMixin, enum_column, new_id
from autoblog.models.organization import Organization


class WebsiteStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    DELETED = "deleted"


class ContentLength(str, enum.Enum):
    SHORT = "SHORT"
    MEDIUM = "MEDIUM"
    LONG = "LONG"
    PILLAR = "PILLAR"


class Website(Base, TimestampMixin):
    """A customer site that receives generated posts."""

    __tablename__ = "websites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    domain: Mapped[str] = mapped_column(String(255))
    subdomain: Mapped[str | None] = mapped_column(String(100))
    brand_name: Mapped[str] = mapped_column(String(255), default="")
    niche: Mapped[str | None] = mapped_column(String(255))
    target_audience: Mapped[str | None] = mapped_column(String(500))
    tone: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[WebsiteStatus] = mapped_column(
        enum_column(WebsiteStatus, "websitestatus"), default=WebsiteStatus.ACTIVE
    )
    timezone: Mapped[str] = mapped_column(String(50), default="UTC")
    owner_email: Mapped[str | None] = mapped_column(String(255))

    # Publish channel configuration; a channel runs only when configured
    indexnow_key: Mapped[str | None] = mapped_column(String(128))
    twitter_access_token: Mapped[str | None] = mapped_column(String(512))
    linkedin_access_token: Mapped[str | None] = mapped_column(String(1024))
    linkedin_author_urn: Mapped[str | None] = mapped_column(String(128))
    webhook_url: Mapped[str | None] = mapped_column(String(512))
    webhook_secret: Mapped[str | None] = mapped_column(String(255))
    ghost_config: Mapped[dict | None] = mapped_column(JSON)
    shopify_config: Mapped[dict | None] = mapped_column(JSON)
    cms_type: Mapped[str | None] = mapped_column(String(20))
    webflow_config: Mapped[dict | None] = mapped_column(JSON)

    organization: Mapped[Organization] = relationship(lazy="selectin")
    blog_settings: Mapped[BlogSettings | None] = relationship(
        back_populates="website", lazy="selectin", uselist=False
    )

    @property
    def public_base_url(self) -> str:
        if self.subdomain:
            return f"{get_settings().base_url}/blog/{self.subdomain}"
        return f"https://{self.domain}"

    def __repr__(self) -> str:
        return f"<Website {self.domain} status={self.status.value}>"


class BlogSettings(Base):
    """Per-website generation defaults and the auto-publish schedule."""

    __tablename__ = "blog_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    website_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("websites.id", ondelete="CASCADE"), unique=True
    )
    auto_publish: Mapped[bool] = mapped_column(Boolean, default=False)
    content_length: Mapped[ContentLength] = mapped_column(
        enum_column(ContentLength, "contentlength"), default=ContentLength.MEDIUM
    )
    include_images: Mapped[bool] = mapped_column(Boolean, default=True)
    include_faq: Mapped[bool] = mapped_column(Boolean, default=True)
    publish_time: Mapped[str | None] = mapped_column(String(5))  # HH:MM, website-local
    publish_window_minutes: Mapped[int] = mapped_column(Integer, default=60)

    website: Mapped[Website] = relationship(back_populates="blog_settings")
