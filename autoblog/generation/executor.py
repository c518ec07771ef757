"""
Pipeline executor: runs one generation job from queued to a terminal state.

Every database write happens in its own short session so that progress is
visible to pollers while the (slow) pipeline steps run, and so that no
connection is held across model calls.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoblog.core.database import AsyncSessionLocal
from autoblog.core.datetime_utils import utc_now
from autoblog.core.logging import get_logger
from autoblog.generation import store
from autoblog.generation.errors import PipelineStepError
from autoblog.generation.quota import record_quota_usage
from autoblog.models import BlogPost, JobStatus, KeywordStatus, PostStatus, Website
from autoblog.pipeline import ContentPipeline, PipelineContext, WebsiteBrief, get_default_pipeline
from autoblog.pipeline.content import WRITING_STEPS, step_progress
from autoblog.pipeline.text import slugify
from autoblog.publish.hook import run_publish_hook
from autoblog.schemas.job import JobInput
from autoblog.schemas.pipeline import GeneratedPost

logger = get_logger(__name__)

PublishHook = Callable[[AsyncSession, str, str, str], Awaitable[Any]]

CANCELLED_ERROR = "Job was cancelled before it finished (time limit exceeded)."


@dataclass
class JobOutcome:
    """What happened to a claimed job."""

    job_id: str
    status: JobStatus
    blog_post_id: str | None = None
    error: str | None = None
    superseded: bool = False


class _Superseded(Exception):
    """The job left `processing` under us (recovered as stuck)."""


async def process_job(
    job_id: str,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    pipeline: ContentPipeline | None = None,
    publish_hook: PublishHook | None = None,
) -> JobOutcome | None:
    """
    Claim and execute a queued job.

    Returns None when the job could not be claimed (not queued, already taken
    by another worker, or missing); duplicate dispatch is therefore harmless.
    Never raises for pipeline failures: they are recorded on the job.
    Cancellation is recorded too, then propagated.
    """
    session_factory = session_factory or AsyncSessionLocal
    log = logger.bind(job_id=job_id)

    async with session_factory() as db:
        claimed = await store.claim_job(db, job_id)
        await db.commit()

    if not claimed:
        log.info("job_claim_skipped")
        return None

    log.info("job_processing_started")

    try:
        # Built after the claim, so a misconfigured default pipeline fails the job
        pipeline = pipeline or get_default_pipeline()
        outcome = await _run(job_id, session_factory, pipeline)
    except asyncio.CancelledError:
        log.warning("job_cancelled")
        await _record_failure(session_factory, job_id, CANCELLED_ERROR)
        raise
    except _Superseded:
        log.warning("job_superseded")
        return JobOutcome(job_id=job_id, status=JobStatus.FAILED, superseded=True)
    except Exception as e:
        message = e.message if isinstance(e, PipelineStepError) else (str(e) or type(e).__name__)
        log.bind(
            step=getattr(e, "step", None),
            error=message,
        ).exception("job_processing_failed")
        await _record_failure(session_factory, job_id, message)
        return JobOutcome(job_id=job_id, status=JobStatus.FAILED, error=message)

    if outcome.superseded:
        return JobOutcome(job_id=job_id, status=JobStatus.FAILED, superseded=True)

    log.bind(blog_post_id=outcome.blog_post_id).info("job_processing_completed")

    if outcome.blog_post_id and outcome.auto_publish:
        await _publish(session_factory, publish_hook, outcome)

    return JobOutcome(
        job_id=job_id,
        status=JobStatus.COMPLETED,
        blog_post_id=outcome.blog_post_id,
    )


@dataclass
class _RunResult:
    blog_post_id: str | None
    website_id: str
    auto_publish: bool
    superseded: bool = False


async def _run(
    job_id: str,
    session_factory: async_sessionmaker[AsyncSession],
    pipeline: ContentPipeline,
) -> _RunResult:
    async with session_factory() as db:
        job = await store.get_job(db, job_id)
        if job is None:
            raise _Superseded()
        job_input = JobInput.model_validate(job.input)
        website = await store.get_website(db, job.website_id)

    if website is None:
        raise PipelineStepError(pipeline.steps[0], "Website not found")

    context = PipelineContext(
        keyword=job_input.keyword,
        website=WebsiteBrief(
            id=website.id,
            brand_name=website.brand_name,
            domain=website.domain,
            niche=website.niche,
            target_audience=website.target_audience,
            tone=website.tone,
        ),
        content_length=job_input.content_length,
        include_images=job_input.include_images,
        include_faq=job_input.include_faq,
    )

    for step in pipeline.steps:
        progress = step_progress(step, pipeline.steps)
        async with session_factory() as db:
            still_processing = await store.record_progress(
                db, job_id, step, progress.percentage
            )
            if still_processing and step in WRITING_STEPS and job_input.keyword_id:
                await store.set_keyword_status(
                    db, job_input.keyword_id, KeywordStatus.GENERATING
                )
            await db.commit()

        if not still_processing:
            raise _Superseded()

        try:
            await pipeline.run_step(step, context)
        except PipelineStepError:
            raise
        except Exception as e:
            raise PipelineStepError(step, str(e) or type(e).__name__) from e

    post = pipeline.build_post(context)

    async with session_factory() as db:
        return await _save_result(db, job_id, job_input, website, post)


async def _save_result(
    db: AsyncSession,
    job_id: str,
    job_input: JobInput,
    website: Website,
    post: GeneratedPost,
) -> _RunResult:
    """Persist post, keyword, job and quota in one transaction."""
    slug = await store.unique_slug(db, website.id, post.slug or slugify(post.title))
    now = utc_now()

    blog_post = BlogPost(
        website_id=website.id,
        title=post.title,
        slug=slug,
        content=post.content,
        excerpt=post.excerpt or None,
        meta_title=post.meta_title or None,
        meta_description=post.meta_description or None,
        focus_keyword=post.focus_keyword or job_input.keyword,
        secondary_keywords=post.secondary_keywords,
        tags=post.tags,
        category=post.category or None,
        featured_image=post.featured_image_url,
        featured_image_alt=post.featured_image_alt,
        structured_data=post.structured_data,
        research_data=post.research_data or None,
        social_captions=post.social_captions.model_dump(),
        word_count=post.word_count,
        reading_time=post.reading_time,
        status=PostStatus.PUBLISHED if job_input.auto_publish else PostStatus.REVIEW,
        published_at=now if job_input.auto_publish else None,
        generated_by="ai",
        ai_model=post.model,
    )
    db.add(blog_post)
    await db.flush()

    completed = await store.complete_job(
        db,
        job_id,
        blog_post.id,
        output={"blogPostId": blog_post.id, "title": blog_post.title, "slug": slug},
    )
    if not completed:
        await db.rollback()
        logger.bind(job_id=job_id).warning("job_completion_discarded")
        return _RunResult(
            blog_post_id=None,
            website_id=website.id,
            auto_publish=False,
            superseded=True,
        )

    if job_input.keyword_id:
        await store.set_keyword_status(
            db,
            job_input.keyword_id,
            KeywordStatus.COMPLETED,
            blog_post_id=blog_post.id,
            error_message=None,
        )

    await record_quota_usage(db, job_id, website.organization_id)
    await db.commit()

    return _RunResult(
        blog_post_id=blog_post.id,
        website_id=website.id,
        auto_publish=job_input.auto_publish,
    )


async def _record_failure(
    session_factory: async_sessionmaker[AsyncSession],
    job_id: str,
    message: str,
) -> None:
    async with session_factory() as db:
        job = await store.get_job(db, job_id)
        if job is None:
            return
        if await store.fail_job(db, job_id, message) and job.keyword_id:
            await store.fail_keyword(db, job.keyword_id, message)
        await db.commit()


async def _publish(
    session_factory: async_sessionmaker[AsyncSession],
    publish_hook: PublishHook | None,
    outcome: _RunResult,
) -> None:
    """Run the publish hook; its failures never change the job."""
    publish_hook = publish_hook or run_publish_hook

    try:
        async with session_factory() as db:
            await publish_hook(db, outcome.blog_post_id, outcome.website_id, "auto")
            await db.commit()
    except Exception as e:
        logger.bind(
            blog_post_id=outcome.blog_post_id,
            error=str(e),
        ).exception("publish_hook_failed")
