"""Dashboard generation endpoints (single and bulk)."""

from fastapi import APIRouter, status

from autoblog.dependencies import (
    Config,
    CurrentPrincipal,
    DBSession,
    Dispatcher,
    get_org_website,
)
from autoblog.generation.bulk import enqueue_bulk
from autoblog.generation.enqueue import queue_keyword_generation
from autoblog.schemas.job import (
    BulkGenerateRequest,
    BulkGenerateResponse,
    GenerateRequest,
    GenerateResponse,
)

router = APIRouter()


@router.post(
    "/websites/{website_id}/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_post(
    website_id: str,
    db: DBSession,
    principal: CurrentPrincipal,
    dispatcher: Dispatcher,
    body: GenerateRequest | None = None,
) -> GenerateResponse:
    """
    Queue a post for the next pending keyword (or the one given).

    The job runs in the background; poll GET /api/jobs/{jobId} for progress.
    """
    body = body or GenerateRequest()
    website = await get_org_website(db, website_id, principal)

    queued = await queue_keyword_generation(
        db,
        website,
        keyword_id=body.keyword_id,
        content_length=body.content_length,
        include_images=body.include_images,
        include_faq=body.include_faq,
        auto_publish=body.auto_publish,
    )
    await db.commit()
    dispatcher.dispatch(queued.job_id)

    return GenerateResponse(
        jobId=queued.job_id,
        keyword=queued.keyword,
        message="Generation started",
        remaining=queued.remaining,
    )


@router.post(
    "/websites/{website_id}/generate/bulk",
    response_model=BulkGenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_bulk(
    website_id: str,
    body: BulkGenerateRequest,
    db: DBSession,
    principal: CurrentPrincipal,
    dispatcher: Dispatcher,
    config: Config,
) -> BulkGenerateResponse:
    """Queue several pending keywords at once, capped by quota."""
    website = await get_org_website(db, website_id, principal)

    result = await enqueue_bulk(
        db,
        website,
        count=body.count,
        content_length=body.content_length,
        auto_publish=body.auto_publish,
        keyword_ids=body.keyword_ids,
        max_jobs=config.generation.bulk_max_jobs,
        single_active=config.generation.enforce_single_active_job,
    )
    await db.commit()
    for job_id in result.job_ids:
        dispatcher.dispatch(job_id)

    return BulkGenerateResponse(
        queued=len(result.jobs),
        jobs=result.jobs,
        message=result.message,
    )
