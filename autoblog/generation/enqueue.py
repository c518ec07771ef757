"""Turning a keyword into a queued generation job."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.config import get_config
from autoblog.core.logging import get_logger
from autoblog.generation import store
from autoblog.generation.admission import check_generation_limit
from autoblog.generation.errors import (
    AdmissionDeniedError,
    JobConflictError,
    NoPendingKeywordsError,
    WebsiteInactiveError,
)
from autoblog.models import ContentLength, Keyword, KeywordStatus, Website, WebsiteStatus
from autoblog.schemas.job import JobInput

logger = get_logger(__name__)


def build_job_input(
    website: Website,
    keyword: Keyword,
    content_length: ContentLength | None = None,
    include_images: bool | None = None,
    include_faq: bool | None = None,
    auto_publish: bool | None = None,
) -> JobInput:
    """Job input for `keyword`, falling back to the website's blog settings."""
    blog_settings = website.blog_settings

    def pick(value, attr: str, default):
        if value is not None:
            return value
        if blog_settings is not None:
            return getattr(blog_settings, attr)
        return default

    return JobInput(
        website_id=website.id,
        keyword_id=keyword.id,
        keyword=keyword.keyword,
        content_length=pick(
            content_length,
            "content_length",
            ContentLength(get_config().generation.default_content_length),
        ),
        include_images=pick(include_images, "include_images", True),
        include_faq=pick(include_faq, "include_faq", True),
        auto_publish=pick(auto_publish, "auto_publish", False),
    )


async def enqueue_generation_job(db: AsyncSession, job_input: JobInput) -> str:
    """
    Create a queued job and mark its keyword as researching.

    No quota check and no execution happen here; callers gate with
    check_generation_limit and hand the id to a dispatcher after commit.
    """
    job = await store.create_job(db, job_input)

    if job_input.keyword_id:
        await store.set_keyword_status(
            db, job_input.keyword_id, KeywordStatus.RESEARCHING, error_message=None
        )

    logger.bind(
        job_id=job.id,
        website_id=job_input.website_id,
        keyword=job_input.keyword,
    ).info("generation_job_enqueued")
    return job.id


@dataclass
class QueuedGeneration:
    job_id: str
    keyword_id: str
    keyword: str
    remaining: int | None


async def queue_keyword_generation(
    db: AsyncSession,
    website: Website,
    keyword_id: str | None = None,
    content_length: ContentLength | None = None,
    include_images: bool | None = None,
    include_faq: bool | None = None,
    auto_publish: bool | None = None,
) -> QueuedGeneration:
    """
    Gate, pick a keyword and enqueue one job for an on-demand request.

    Raises:
        WebsiteInactiveError: Website is paused or deleted
        AdmissionDeniedError: Monthly quota exhausted
        NoPendingKeywordsError: Requested keyword is not pending, or none is
        JobConflictError: The website already has a job queued or running
    """
    if website.status != WebsiteStatus.ACTIVE:
        raise WebsiteInactiveError()

    admission = await check_generation_limit(db, website.id)
    if not admission.allowed:
        raise AdmissionDeniedError(admission.reason or "Generation limit reached", remaining=0)

    keyword = await store.next_pending_keyword(db, website.id, keyword_id)
    if keyword is None:
        if keyword_id:
            raise NoPendingKeywordsError("Keyword not found or not pending")
        raise NoPendingKeywordsError()

    active = await store.find_active_job(db, website.id)
    if active is not None:
        raise JobConflictError(
            "A generation job is already running for this website",
            jobId=active.id,
        )

    job_input = build_job_input(
        website,
        keyword,
        content_length=content_length,
        include_images=include_images,
        include_faq=include_faq,
        auto_publish=auto_publish,
    )
    job_id = await enqueue_generation_job(db, job_input)

    remaining = admission.remaining
    if remaining is not None:
        remaining = max(remaining - 1, 0)
    return QueuedGeneration(
        job_id=job_id,
        keyword_id=keyword.id,
        keyword=keyword.keyword,
        remaining=remaining,
    )
