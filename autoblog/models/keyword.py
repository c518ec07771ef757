"""Keywords queued for generation (status mirrors the latest job)."""

import enum

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from autoblog.models.base import Base, TimestampMixin, enum_column, new_id


class KeywordStatus(str, enum.Enum):
    PENDING = "pending"
    RESEARCHING = "researching"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class Keyword(Base, TimestampMixin):
    """A target keyword for one blog post."""

    __tablename__ = "keywords"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    website_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("websites.id", ondelete="CASCADE"), index=True
    )
    keyword: Mapped[str] = mapped_column(String(255))
    priority: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[KeywordStatus] = mapped_column(
        enum_column(KeywordStatus, "keywordstatus"), default=KeywordStatus.PENDING, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    blog_post_id: Mapped[str | None] = mapped_column(String(36))

    def __repr__(self) -> str:
        return f"<Keyword {self.keyword!r} status={self.status.value}>"
