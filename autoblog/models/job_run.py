"""Scheduler execution history."""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from autoblog.models.base import Base, new_id


class JobRun(Base):
    """Records each execution of a scheduled sweep (generation trigger, worker poll)."""

    __tablename__ = "job_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    schedule_id: Mapped[str] = mapped_column(String(100), index=True)
    scheduled_at: Mapped[datetime]
    started_at: Mapped[datetime]
    finished_at: Mapped[datetime]
    outcome: Mapped[str] = mapped_column(String(20))  # success, error, missed, skipped
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
