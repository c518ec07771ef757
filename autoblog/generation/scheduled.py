"""
Scheduled trigger: the hourly sweep behind auto-publishing.

One run recovers stuck jobs, publishes scheduled posts whose time has come,
and enqueues at most one job per eligible website. Jobs are dispatched only
after the enqueue transaction commits.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autoblog.core.datetime_utils import is_in_publish_window, utc_now
from autoblog.core.logging import get_logger
from autoblog.generation import store
from autoblog.generation.admission import check_generation_limit
from autoblog.generation.dispatcher import JobDispatcher, get_dispatcher
from autoblog.generation.enqueue import build_job_input, enqueue_generation_job
from autoblog.generation.recovery import recover_stuck_jobs
from autoblog.models import BlogPost, BlogSettings, PostStatus, Website, WebsiteStatus
from autoblog.publish.hook import TRIGGER_SCHEDULED, run_publish_hook
from autoblog.schemas.job import CronResponse, CronScheduledResult, CronWebsiteResult

logger = get_logger(__name__)

ACTION_QUEUED = "queued"
ACTION_SKIPPED_ACTIVE_JOB = "skipped_active_job"
ACTION_LIMIT_REACHED = "limit_reached"
ACTION_NO_KEYWORDS = "no_keywords"
ACTION_OUTSIDE_WINDOW = "outside_window"

PublishHook = Callable[..., Awaitable[Any]]


async def publish_due_posts(
    db: AsyncSession,
    publish_hook: PublishHook | None = None,
    now: datetime | None = None,
) -> list[CronScheduledResult]:
    """Flip scheduled posts whose time has passed to published and run the hook."""
    publish_hook = publish_hook or run_publish_hook
    now = now or utc_now()

    # Plain rows: a failed hook rolls the session back and expires ORM instances
    result = await db.execute(
        select(BlogPost.id, BlogPost.website_id, BlogPost.title)
        .where(BlogPost.status == PostStatus.SCHEDULED, BlogPost.scheduled_at <= now)
        .order_by(BlogPost.scheduled_at.asc())
    )
    published: list[CronScheduledResult] = []

    for post_id, website_id, title in result.all():
        flipped = await db.execute(
            update(BlogPost)
            .where(BlogPost.id == post_id, BlogPost.status == PostStatus.SCHEDULED)
            .values(status=PostStatus.PUBLISHED, published_at=now)
            .execution_options(synchronize_session=False)
        )
        if not flipped.rowcount:
            continue
        await db.commit()

        try:
            await publish_hook(db, post_id, website_id, TRIGGER_SCHEDULED)
            await db.commit()
        except Exception as e:
            logger.bind(post_id=post_id, error=str(e)).exception("scheduled_publish_hook_failed")
            await db.rollback()

        published.append(CronScheduledResult(postId=post_id, title=title))
        logger.bind(post_id=post_id, website_id=website_id).info("scheduled_post_published")

    return published


async def _eligible_websites(db: AsyncSession) -> list[Website]:
    result = await db.execute(
        select(Website)
        .join(BlogSettings, BlogSettings.website_id == Website.id)
        .where(Website.status == WebsiteStatus.ACTIVE, BlogSettings.auto_publish.is_(True))
        .order_by(Website.created_at.asc())
        .options(selectinload(Website.blog_settings))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _plan_website(
    db: AsyncSession,
    website: Website,
    now: datetime | None,
) -> tuple[str, str | None]:
    """Decide what to do for one website; enqueues when eligible."""
    blog_settings = website.blog_settings
    if not is_in_publish_window(
        website.timezone,
        blog_settings.publish_time,
        blog_settings.publish_window_minutes,
        now=now,
    ):
        return ACTION_OUTSIDE_WINDOW, None

    if await store.find_active_job(db, website.id) is not None:
        return ACTION_SKIPPED_ACTIVE_JOB, None

    admission = await check_generation_limit(db, website.id)
    if not admission.allowed:
        return ACTION_LIMIT_REACHED, None

    keyword = await store.next_pending_keyword(db, website.id)
    if keyword is None:
        return ACTION_NO_KEYWORDS, None

    job_input = build_job_input(website, keyword, auto_publish=True)
    job_id = await enqueue_generation_job(db, job_input)
    return ACTION_QUEUED, job_id


async def run_scheduled_generation(
    db: AsyncSession,
    dispatcher: JobDispatcher | None = None,
    publish_hook: PublishHook | None = None,
    now: datetime | None = None,
) -> CronResponse:
    """
    One pass of the scheduled trigger.

    Args:
        db: Session owned by the caller
        dispatcher: Receives the ids of the jobs enqueued by this pass
        publish_hook: Hook for due scheduled posts (defaults to run_publish_hook)
        now: Aware datetime used for publish windows (wall clock by default)

    Returns:
        Summary of what was recovered, published and queued
    """
    dispatcher = dispatcher or get_dispatcher()

    recovered = await recover_stuck_jobs(db)
    await db.commit()

    scheduled_results = await publish_due_posts(db, publish_hook)

    results: list[CronWebsiteResult] = []
    for website in await _eligible_websites(db):
        action, job_id = await _plan_website(db, website, now)
        # Commit before dispatch so the worker can see the row
        await db.commit()
        if job_id:
            dispatcher.dispatch(job_id)

        results.append(
            CronWebsiteResult(websiteId=website.id, name=website.name, action=action, jobId=job_id)
        )

    queued = sum(1 for r in results if r.action == ACTION_QUEUED)
    logger.bind(
        recovered=recovered,
        scheduled_published=len(scheduled_results),
        websites=len(results),
        queued=queued,
    ).info("scheduled_generation_completed")

    return CronResponse(
        recoveredJobs=recovered,
        scheduledPublished=len(scheduled_results),
        queued=queued,
        results=results,
        scheduledResults=scheduled_results,
    )
