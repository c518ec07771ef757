"""
Persistence operations for generation jobs and the keywords they mirror.

Every state transition is a single conditional UPDATE guarded by the
expected current status, and callers inspect the row count to learn
whether they won. Two workers racing on the same job therefore cannot
both claim it, and a job reclaimed by the recovery sweep cannot later be
completed by the original worker.

Functions here flush but never commit; the caller owns the transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autoblog.core.datetime_utils import get_cutoff, utc_now
from autoblog.models import (
    ACTIVE_STATUSES,
    BlogPost,
    GenerationJob,
    JobStatus,
    Keyword,
    KeywordStatus,
    Organization,
    Website,
)
from autoblog.schemas.job import JobInput

MAX_ERROR_LENGTH = 1000


async def _conditional_update(db: AsyncSession, stmt: Any) -> bool:
    result = await db.execute(stmt.execution_options(synchronize_session=False))
    return bool(result.rowcount)


# --- jobs --------------------------------------------------------------


async def create_job(db: AsyncSession, job_input: JobInput) -> GenerationJob:
    job = GenerationJob(
        website_id=job_input.website_id,
        keyword_id=job_input.keyword_id,
        status=JobStatus.QUEUED,
        progress=0,
        input=job_input.model_dump(by_alias=True, mode="json"),
    )
    db.add(job)
    await db.flush()
    return job


async def get_job(db: AsyncSession, job_id: str) -> GenerationJob | None:
    """Load a job, bypassing stale identity-map state left by conditional updates."""
    result = await db.execute(
        select(GenerationJob)
        .where(GenerationJob.id == job_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def claim_job(db: AsyncSession, job_id: str) -> bool:
    """queued -> processing. False when another caller got there first."""
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status == JobStatus.QUEUED)
        .values(
            status=JobStatus.PROCESSING,
            started_at=utc_now(),
            current_step="research",
            progress=0,
        ),
    )


async def record_progress(db: AsyncSession, job_id: str, step: str, progress: int) -> bool:
    """Move the job to `step`; progress never goes backwards.

    Returns False when the job is no longer processing (e.g. it was expired
    by the recovery sweep), which tells the executor to stop.
    """
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status == JobStatus.PROCESSING)
        .values(
            current_step=step,
            progress=case(
                (GenerationJob.progress < progress, progress),
                else_=GenerationJob.progress,
            ),
        ),
    )


async def complete_job(
    db: AsyncSession,
    job_id: str,
    blog_post_id: str,
    output: dict[str, Any],
) -> bool:
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status == JobStatus.PROCESSING)
        .values(
            status=JobStatus.COMPLETED,
            progress=100,
            current_step="done",
            blog_post_id=blog_post_id,
            output=output,
            error=None,
            completed_at=utc_now(),
        ),
    )


async def fail_job(db: AsyncSession, job_id: str, error: str) -> bool:
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status == JobStatus.PROCESSING)
        .values(
            status=JobStatus.FAILED,
            error=error[:MAX_ERROR_LENGTH],
            completed_at=utc_now(),
        ),
    )


async def expire_stuck_job(db: AsyncSession, job_id: str, cutoff: datetime, error: str) -> bool:
    """processing -> failed, only if the job really started before `cutoff`."""
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(
            GenerationJob.id == job_id,
            GenerationJob.status == JobStatus.PROCESSING,
            GenerationJob.started_at < cutoff,
        )
        .values(
            status=JobStatus.FAILED,
            error=error[:MAX_ERROR_LENGTH],
            completed_at=utc_now(),
        ),
    )


async def requeue_job(db: AsyncSession, job_id: str) -> bool:
    """failed -> queued, clearing everything a previous attempt left behind."""
    return await _conditional_update(
        db,
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status == JobStatus.FAILED)
        .values(
            status=JobStatus.QUEUED,
            error=None,
            progress=0,
            current_step=None,
            started_at=None,
            completed_at=None,
        ),
    )


async def find_active_job(db: AsyncSession, website_id: str) -> GenerationJob | None:
    result = await db.execute(
        select(GenerationJob)
        .where(
            GenerationJob.website_id == website_id,
            GenerationJob.status.in_(ACTIVE_STATUSES),
        )
        .order_by(GenerationJob.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def count_active_jobs(db: AsyncSession, website_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(GenerationJob)
        .where(
            GenerationJob.website_id == website_id,
            GenerationJob.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalar_one()


async def next_queued_job(db: AsyncSession) -> GenerationJob | None:
    """Oldest queued job, the worker's default pick."""
    result = await db.execute(
        select(GenerationJob)
        .where(GenerationJob.status == JobStatus.QUEUED)
        .order_by(GenerationJob.created_at.asc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_stuck_jobs(db: AsyncSession, cutoff: datetime) -> list[GenerationJob]:
    result = await db.execute(
        select(GenerationJob)
        .where(
            GenerationJob.status == JobStatus.PROCESSING,
            GenerationJob.started_at < cutoff,
        )
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_recent_jobs(
    db: AsyncSession,
    website_id: str,
    failure_window_minutes: int = 60,
    limit: int = 5,
) -> list[GenerationJob]:
    """Active jobs plus jobs that failed recently, newest first."""
    result = await db.execute(
        select(GenerationJob)
        .where(
            GenerationJob.website_id == website_id,
            or_(
                GenerationJob.status.in_(ACTIVE_STATUSES),
                (GenerationJob.status == JobStatus.FAILED)
                & (GenerationJob.completed_at >= get_cutoff(minutes=failure_window_minutes)),
            ),
        )
        .order_by(GenerationJob.created_at.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# --- keywords ----------------------------------------------------------


async def next_pending_keyword(
    db: AsyncSession,
    website_id: str,
    keyword_id: str | None = None,
) -> Keyword | None:
    """The requested keyword if it is still pending, else the next one in the queue."""
    keywords = await pending_keywords(
        db, website_id, limit=1, keyword_ids=[keyword_id] if keyword_id else None
    )
    return keywords[0] if keywords else None


async def pending_keywords(
    db: AsyncSession,
    website_id: str,
    limit: int,
    keyword_ids: list[str] | None = None,
) -> list[Keyword]:
    """Pending keywords ordered by priority (high first), then age."""
    query = select(Keyword).where(
        Keyword.website_id == website_id,
        Keyword.status == KeywordStatus.PENDING,
    )
    if keyword_ids:
        query = query.where(Keyword.id.in_(keyword_ids))

    result = await db.execute(
        query.order_by(Keyword.priority.desc(), Keyword.created_at.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def set_keyword_status(
    db: AsyncSession,
    keyword_id: str,
    status: KeywordStatus,
    **values: Any,
) -> None:
    await db.execute(
        update(Keyword)
        .where(Keyword.id == keyword_id)
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )


async def fail_keyword(db: AsyncSession, keyword_id: str, message: str) -> None:
    await set_keyword_status(
        db,
        keyword_id,
        KeywordStatus.FAILED,
        error_message=message[:MAX_ERROR_LENGTH],
        retry_count=Keyword.retry_count + 1,
    )


# --- posts -------------------------------------------------------------


async def unique_slug(db: AsyncSession, website_id: str, base_slug: str) -> str:
    """`base_slug`, or the first free `base_slug-N` for this website."""
    result = await db.execute(
        select(BlogPost.slug).where(
            BlogPost.website_id == website_id,
            or_(BlogPost.slug == base_slug, BlogPost.slug.like(f"{base_slug}-%")),
        )
    )
    taken = set(result.scalars().all())
    if base_slug not in taken:
        return base_slug

    suffix = 1
    while f"{base_slug}-{suffix}" in taken:
        suffix += 1
    return f"{base_slug}-{suffix}"


# --- websites ----------------------------------------------------------


async def get_website(
    db: AsyncSession,
    website_id: str,
    organization_id: str | None = None,
) -> Website | None:
    """Website with its settings and subscription loaded (safe to read without lazy IO)."""
    query = (
        select(Website)
        .where(Website.id == website_id)
        .options(
            selectinload(Website.blog_settings),
            selectinload(Website.organization).selectinload(Organization.subscription),
        )
        .execution_options(populate_existing=True)
    )
    if organization_id is not None:
        query = query.where(Website.organization_id == organization_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()
