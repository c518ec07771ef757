"""Bulk enqueue: several pending keywords of one website at once."""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.generation import store
from autoblog.generation.admission import check_generation_limit
from autoblog.generation.enqueue import build_job_input, enqueue_generation_job
from autoblog.generation.errors import (
    AdmissionDeniedError,
    JobConflictError,
    NoPendingKeywordsError,
    WebsiteInactiveError,
)
from autoblog.models import ContentLength, Website, WebsiteStatus
from autoblog.schemas.job import QueuedJob


@dataclass
class BulkEnqueueResult:
    jobs: list[QueuedJob] = field(default_factory=list)

    @property
    def job_ids(self) -> list[str]:
        return [job.jobId for job in self.jobs]

    @property
    def message(self) -> str:
        count = len(self.jobs)
        return f"{count} post{'s' if count != 1 else ''} queued for generation"


async def enqueue_bulk(
    db: AsyncSession,
    website: Website,
    count: int,
    content_length: ContentLength,
    auto_publish: bool = False,
    keyword_ids: list[str] | None = None,
    max_jobs: int = 10,
    single_active: bool = False,
) -> BulkEnqueueResult:
    """
    Enqueue up to min(count, remaining quota, max_jobs) pending keywords.

    With `single_active` (the one-active-job index is installed) at most one
    job is queued, and none while the website already has an active job.

    Raises:
        AdmissionDeniedError: No quota left this month
        NoPendingKeywordsError: Nothing pending to generate
        JobConflictError: `single_active` and the website has an active job
    """
    if website.status != WebsiteStatus.ACTIVE:
        raise WebsiteInactiveError()

    admission = await check_generation_limit(db, website.id)
    if not admission.allowed or admission.remaining == 0:
        raise AdmissionDeniedError(
            admission.reason or "Monthly post limit reached",
            remaining=0,
        )

    limit = min(count, max_jobs)
    if single_active:
        active = await store.find_active_job(db, website.id)
        if active is not None:
            raise JobConflictError(
                "A generation job is already running for this website",
                jobId=active.id,
            )
        limit = 1
    if admission.remaining is not None:
        limit = min(limit, admission.remaining)

    keywords = await store.pending_keywords(db, website.id, limit, keyword_ids)
    if not keywords:
        raise NoPendingKeywordsError()

    result = BulkEnqueueResult()
    for keyword in keywords:
        job_input = build_job_input(
            website,
            keyword,
            content_length=content_length,
            auto_publish=auto_publish,
        )
        job_id = await enqueue_generation_job(db, job_input)
        result.jobs.append(QueuedJob(jobId=job_id, keyword=keyword.keyword))

    return result
