"""Public v1 API for programmatic generation."""

from fastapi import APIRouter, Depends, Request, status

from autoblog.config import get_config
from autoblog.core.rate_limit import limiter
from autoblog.dependencies import ApiPrincipal, DBSession, Dispatcher, get_org_website, require_scope
from autoblog.generation.enqueue import queue_keyword_generation
from autoblog.schemas.job import (
    GenerateRequest,
    PublicGenerateData,
    PublicGenerateMeta,
    PublicGenerateResponse,
)

router = APIRouter()

SCOPE_GENERATE = "generate:write"


@router.post(
    "/websites/{website_id}/generate",
    response_model=PublicGenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(get_config().public_api.rate_limit)
async def public_generate(
    request: Request,
    website_id: str,
    db: DBSession,
    dispatcher: Dispatcher,
    principal: ApiPrincipal = Depends(require_scope(SCOPE_GENERATE)),
    body: GenerateRequest | None = None,
) -> PublicGenerateResponse:
    """Queue generation for a website; rate limited per API key."""
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

    return PublicGenerateResponse(
        data=PublicGenerateData(
            jobId=queued.job_id,
            keywordId=queued.keyword_id,
            keyword=queued.keyword,
            status="QUEUED",
        ),
        meta=PublicGenerateMeta(remaining=queued.remaining),
    )
