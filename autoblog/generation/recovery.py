"""
Stuck-job recovery and user-triggered retry.

A job that has been processing for longer than the configured timeout is
assumed to have lost its worker (host killed, deploy, crash). It is moved
to failed so the user can retry it.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.config import get_config
from autoblog.core.datetime_utils import get_cutoff
from autoblog.core.logging import get_logger
from autoblog.generation import store
from autoblog.generation.errors import JobConflictError, JobNotFoundError
from autoblog.models import GenerationJob, JobStatus, KeywordStatus

logger = get_logger(__name__)

JOB_TIMEOUT_ERROR = "Job timed out. Click Retry to try again."
KEYWORD_TIMEOUT_ERROR = "Generation timed out"


def _timeout_minutes(timeout_minutes: int | None) -> int:
    if timeout_minutes is not None:
        return timeout_minutes
    return get_config().generation.stuck_job_timeout_minutes


def is_stuck(job: GenerationJob, timeout_minutes: int | None = None) -> bool:
    return (
        job.status == JobStatus.PROCESSING
        and job.started_at is not None
        and job.started_at < get_cutoff(minutes=_timeout_minutes(timeout_minutes))
    )


async def _expire(db: AsyncSession, job: GenerationJob, timeout_minutes: int) -> bool:
    cutoff = get_cutoff(minutes=timeout_minutes)
    if not await store.expire_stuck_job(db, job.id, cutoff, JOB_TIMEOUT_ERROR):
        return False
    if job.keyword_id:
        await store.fail_keyword(db, job.keyword_id, KEYWORD_TIMEOUT_ERROR)
    return True


async def recover_stuck_jobs(db: AsyncSession, timeout_minutes: int | None = None) -> int:
    """Fail every stuck job; returns how many jobs this sweep actually moved."""
    minutes = _timeout_minutes(timeout_minutes)
    stuck = await store.find_stuck_jobs(db, get_cutoff(minutes=minutes))

    recovered = 0
    for job in stuck:
        if await _expire(db, job, minutes):
            recovered += 1
            logger.bind(
                job_id=job.id,
                website_id=job.website_id,
                started_at=str(job.started_at),
            ).warning("stuck_job_recovered")

    if recovered:
        logger.bind(count=recovered, timeout_minutes=minutes).info("stuck_jobs_recovered")
    return recovered


async def reconcile_job(
    db: AsyncSession,
    job: GenerationJob,
    timeout_minutes: int | None = None,
) -> GenerationJob:
    """Lazily fail a single stuck job and return its fresh state."""
    minutes = _timeout_minutes(timeout_minutes)
    if not is_stuck(job, minutes):
        return job

    if await _expire(db, job, minutes):
        logger.bind(job_id=job.id).warning("stuck_job_reconciled")

    refreshed = await store.get_job(db, job.id)
    return refreshed or job


async def reset_job_for_retry(db: AsyncSession, job_id: str) -> GenerationJob:
    """
    Put a failed job back in the queue.

    A job stuck in processing is reconciled first, so a user retrying a dead
    job does not have to wait for the next sweep.

    Raises:
        JobNotFoundError: No such job
        JobConflictError: The job is queued, processing or completed
    """
    job = await store.get_job(db, job_id)
    if job is None:
        raise JobNotFoundError(job_id)

    job = await reconcile_job(db, job)

    if job.status == JobStatus.COMPLETED:
        raise JobConflictError("Job already completed", jobId=job_id, status=job.status.value)
    if not await store.requeue_job(db, job_id):
        raise JobConflictError("Job is already in progress", jobId=job_id, status=job.status.value)

    if job.keyword_id:
        await store.set_keyword_status(
            db, job.keyword_id, KeywordStatus.RESEARCHING, error_message=None
        )

    logger.bind(job_id=job_id).info("generation_job_requeued")
    return await store.get_job(db, job_id)
