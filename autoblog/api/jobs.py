"""Job status, retry and per-website job listing."""

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.dependencies import (
    Config,
    CurrentPrincipal,
    DBSession,
    Dispatcher,
    get_org_website,
)
from autoblog.generation import store
from autoblog.generation.errors import JobNotFoundError
from autoblog.generation.recovery import is_stuck, reconcile_job, reset_job_for_retry
from autoblog.models import BlogPost, GenerationJob, Website
from autoblog.schemas.job import (
    BlogPostSummary,
    JobListItem,
    JobListResponse,
    JobStatusResponse,
    RetryResponse,
)

router = APIRouter()


async def _get_org_job(db: AsyncSession, job_id: str, organization_id: str) -> GenerationJob:
    result = await db.execute(
        select(GenerationJob)
        .join(Website, Website.id == GenerationJob.website_id)
        .where(GenerationJob.id == job_id, Website.organization_id == organization_id)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise JobNotFoundError(job_id)
    return job


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    db: DBSession,
    principal: CurrentPrincipal,
) -> JobStatusResponse:
    """
    Current state of a job.

    A job found stuck in processing is failed on the spot, so a poller never
    waits forever on a dead worker.
    """
    job = await _get_org_job(db, job_id, principal.organization_id)
    was_stuck = is_stuck(job)
    job = await reconcile_job(db, job)

    blog_post = None
    if job.blog_post_id:
        post = await db.get(BlogPost, job.blog_post_id)
        if post is not None:
            blog_post = BlogPostSummary(
                id=post.id,
                title=post.title,
                slug=post.slug,
                status=post.status.value,
                websiteId=post.website_id,
            )

    return JobStatusResponse(
        id=job.id,
        status=job.status.value,
        currentStep=job.current_step,
        progress=job.progress,
        error=job.error,
        startedAt=job.started_at,
        completedAt=job.completed_at,
        blogPostId=job.blog_post_id,
        output=job.output,
        blogPost=blog_post,
        isStuck=was_stuck,
    )


@router.post("/jobs/{job_id}", response_model=RetryResponse)
async def retry_job(
    job_id: str,
    db: DBSession,
    principal: CurrentPrincipal,
    dispatcher: Dispatcher,
) -> RetryResponse:
    """Re-queue a failed job and dispatch it again."""
    await _get_org_job(db, job_id, principal.organization_id)
    await reset_job_for_retry(db, job_id)
    await db.commit()
    dispatcher.dispatch(job_id)
    return RetryResponse(success=True, message="Job re-queued")


@router.get("/websites/{website_id}/jobs", response_model=JobListResponse)
async def list_website_jobs(
    website_id: str,
    db: DBSession,
    principal: CurrentPrincipal,
    config: Config,
) -> JobListResponse:
    """Active jobs plus recent failures for a website, newest first."""
    website = await get_org_website(db, website_id, principal)
    jobs = await store.list_recent_jobs(
        db,
        website.id,
        failure_window_minutes=config.generation.recent_failure_window_minutes,
        limit=5,
    )

    items = []
    for job in jobs:
        job = await reconcile_job(db, job)
        items.append(
            JobListItem(
                id=job.id,
                status=job.status.value,
                currentStep=job.current_step,
                progress=job.progress,
                error=job.error,
                keywordId=job.keyword_id,
                keyword=(job.input or {}).get("keyword"),
                createdAt=job.created_at,
                startedAt=job.started_at,
                blogPostId=job.blog_post_id,
            )
        )
    return JobListResponse(jobs=items)
