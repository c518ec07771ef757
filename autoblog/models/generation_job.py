"""Generation job: the durable unit of work behind every generated post."""

import enum
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from autoblog.models.base import Base, TimestampMixin, enum_column, new_id


class JobStatus(str, enum.Enum):
    """Job lifecycle: queued -> processing -> completed | failed, failed -> queued on retry."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (JobStatus.QUEUED, JobStatus.PROCESSING)


class GenerationJob(Base, TimestampMixin):
    """One attempt to generate a post for a keyword; the table doubles as the work queue."""

    __tablename__ = "generation_jobs"
    __table_args__ = (
        Index("ix_generation_jobs_status_created_at", "status", "created_at"),
        Index("ix_generation_jobs_website_status", "website_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_type: Mapped[str] = mapped_column(String(40), default="blog_generation")
    website_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("websites.id", ondelete="CASCADE")
    )
    keyword_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("keywords.id", ondelete="SET NULL")
    )

    status: Mapped[JobStatus] = mapped_column(
        enum_column(JobStatus, "jobstatus"), default=JobStatus.QUEUED
    )
    current_step: Mapped[str | None] = mapped_column(String(40))
    progress: Mapped[int] = mapped_column(Integer, default=0)

    input: Mapped[dict] = mapped_column(JSON, default=dict)
    output: Mapped[dict | None] = mapped_column(JSON)
    error: Mapped[str | None] = mapped_column(Text)
    blog_post_id: Mapped[str | None] = mapped_column(String(36))

    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()

    def __repr__(self) -> str:
        return f"<GenerationJob {self.id} status={self.status.value} progress={self.progress}>"
