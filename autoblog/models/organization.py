"""Organizations, their subscription quota and per-job quota usage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoblog.core.datetime_utils import utc_now
from autoblog.models.base import Base, TimestampMixin, new_id


class Organization(Base, TimestampMixin):
    """Tenant that owns websites, API keys and a subscription."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))

    subscription: Mapped[Subscription | None] = relationship(
        back_populates="organization", lazy="selectin", uselist=False
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"


class Subscription(Base, TimestampMixin):
    """Monthly generation quota for an organization."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), unique=True
    )
    plan: Mapped[str] = mapped_column(String(50), default="FREE")
    max_posts_per_month: Mapped[int] = mapped_column(Integer, default=3)
    posts_generated_this_month: Mapped[int] = mapped_column(Integer, default=0)

    organization: Mapped[Organization] = relationship(back_populates="subscription")

    @property
    def remaining(self) -> int:
        return max(self.max_posts_per_month - self.posts_generated_this_month, 0)

    def __repr__(self) -> str:
        return (
            f"<Subscription {self.plan} "
            f"{self.posts_generated_this_month}/{self.max_posts_per_month}>"
        )


class QuotaUsage(Base):
    """One row per successfully completed job; guards the monthly counter."""

    __tablename__ = "quota_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(String(36), unique=True)
    organization_id: Mapped[str] = mapped_column(String(36), index=True)
    recorded_at: Mapped[datetime] = mapped_column(default=utc_now)
