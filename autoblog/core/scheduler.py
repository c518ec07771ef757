"""
APScheduler integration for FastAPI.

Runs the generation sweeps in-process.

Jobs:
- Scheduled generation: recover stuck jobs, publish due scheduled posts and
  queue one post per eligible website (top of every hour)
- Worker poll: drain the generation queue (every few seconds, only when the
  in-process worker is enabled)
"""

from datetime import datetime
from typing import Any

from apscheduler import AsyncScheduler, ConflictPolicy, JobOutcome, JobReleased
from apscheduler.datastores.memory import MemoryDataStore
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from autoblog.config import get_config, get_settings
from autoblog.core.database import AsyncSessionLocal
from autoblog.core.datetime_utils import to_naive_utc, utc_now
from autoblog.core.logging import get_logger

logger = get_logger(__name__)

# Global scheduler instance
scheduler: AsyncScheduler | None = None


async def scheduled_generation_job() -> None:
    """Hourly sweep behind auto-publishing."""
    from autoblog.generation.scheduled import run_scheduled_generation

    logger.info("scheduled_generation_job_started")
    async with AsyncSessionLocal() as db:
        try:
            summary = await run_scheduled_generation(db)
            await db.commit()
            logger.bind(
                recovered=summary.recoveredJobs,
                published=summary.scheduledPublished,
                queued=summary.queued,
            ).info("scheduled_generation_job_completed")
        except Exception as e:
            logger.bind(error=str(e)).error("scheduled_generation_job_failed")
            raise  # Re-raise so APScheduler records the failure


async def worker_poll_job() -> None:
    """Drain queued generation jobs (in-process worker)."""
    from autoblog.generation.dispatcher import drain_queue

    processed = await drain_queue()
    if processed:
        logger.bind(processed=processed).info("worker_poll_job_completed")
    else:
        logger.debug("worker_poll_queue_empty")


async def _record_job_result(
    schedule_id: str,
    scheduled_at: datetime,
    started_at: datetime,
    outcome: JobOutcome,
    error: str | None = None,
) -> None:
    """Record job execution result to database."""
    from autoblog.models.job_run import JobRun

    async with AsyncSessionLocal() as db:
        job_run = JobRun(
            schedule_id=schedule_id,
            scheduled_at=to_naive_utc(scheduled_at),
            started_at=to_naive_utc(started_at),
            finished_at=utc_now(),
            outcome=outcome.name,
            error=error,
        )
        db.add(job_run)
        await db.commit()


async def start_scheduler() -> AsyncScheduler | None:
    """Initialize and start the scheduler."""
    global scheduler

    settings = get_settings()
    if not settings.scheduler_enabled:
        logger.info("scheduler_disabled_by_config")
        return None

    data_store = MemoryDataStore()
    scheduler = AsyncScheduler(data_store=data_store)

    # Start the scheduler first (required before calling other methods in APScheduler 4.x)
    await scheduler.__aenter__()

    # Subscribe to job events for history tracking
    scheduler.subscribe(_on_job_completed)

    schedule_ids = ["scheduled_generation"]
    await scheduler.add_schedule(
        scheduled_generation_job,
        CronTrigger(minute=0),
        id="scheduled_generation",
        conflict_policy=ConflictPolicy.replace,
    )

    if settings.worker_enabled:
        await scheduler.add_schedule(
            worker_poll_job,
            IntervalTrigger(seconds=get_config().worker.poll_interval_seconds),
            id="worker_poll",
            conflict_policy=ConflictPolicy.replace,
        )
        schedule_ids.append("worker_poll")

    # Start the scheduler's background worker to actually process jobs
    await scheduler.start_in_background()

    logger.bind(jobs=schedule_ids).info("scheduler_started")
    return scheduler


async def _on_job_completed(event: Any) -> None:
    """Handle job completion events."""
    if not isinstance(event, JobReleased):
        return
    # Frequent polls would flood the history table
    if event.schedule_id == "worker_poll" and event.outcome == JobOutcome.success:
        return

    try:
        scheduled_at = getattr(event, "scheduled_start", None) or utc_now()
        started_at = getattr(event, "started_at", None) or utc_now()
        error = None
        if event.outcome == JobOutcome.error:
            error = getattr(event, "exception_message", None) or str(
                getattr(event, "exception_type", "") or "unknown error"
            )
        await _record_job_result(
            schedule_id=event.schedule_id or "unknown",
            scheduled_at=scheduled_at,
            started_at=started_at,
            outcome=event.outcome,
            error=error,
        )
    except Exception as e:
        logger.bind(error=str(e)).error("failed_to_record_job_result")


async def stop_scheduler() -> None:
    """Gracefully stop the scheduler."""
    global scheduler
    if scheduler:
        await scheduler.__aexit__(None, None, None)
        logger.info("scheduler_stopped")
        scheduler = None
