"""Request/response models for generation jobs."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from autoblog.models.website import ContentLength


class JobInput(BaseModel):
    """What a job was asked to do; stored verbatim on the job row."""

    model_config = ConfigDict(populate_by_name=True)

    website_id: str = Field(alias="websiteId")
    keyword_id: str | None = Field(default=None, alias="keywordId")
    keyword: str
    content_length: ContentLength = Field(default=ContentLength.MEDIUM, alias="contentLength")
    include_images: bool = Field(default=True, alias="includeImages")
    include_faq: bool = Field(default=True, alias="includeFAQ")
    auto_publish: bool = Field(default=False, alias="autoPublish")


class GenerateRequest(BaseModel):
    """Body for POST /api/websites/{id}/generate."""

    model_config = ConfigDict(populate_by_name=True)

    keyword_id: str | None = Field(default=None, alias="keywordId")
    content_length: ContentLength | None = Field(default=None, alias="contentLength")
    include_images: bool | None = Field(default=None, alias="includeImages")
    include_faq: bool | None = Field(default=None, alias="includeFAQ")
    auto_publish: bool | None = Field(default=None, alias="autoPublish")


class BulkGenerateRequest(BaseModel):
    """Body for POST /api/websites/{id}/generate/bulk."""

    model_config = ConfigDict(populate_by_name=True)

    count: int = Field(default=3, ge=1, le=10)
    keyword_ids: list[str] | None = Field(default=None, alias="keywordIds")
    content_length: ContentLength = Field(default=ContentLength.MEDIUM, alias="contentLength")
    auto_publish: bool = Field(default=False, alias="autoPublish")


class WorkerRequest(BaseModel):
    """Body for POST /api/worker/process."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(default=None, alias="jobId")


class BlogPostSummary(BaseModel):
    id: str
    title: str
    slug: str
    status: str
    websiteId: str


class JobStatusResponse(BaseModel):
    """Response for GET /api/jobs/{job_id}."""

    id: str
    status: str
    currentStep: str | None
    progress: int
    error: str | None
    startedAt: datetime | None
    completedAt: datetime | None
    blogPostId: str | None
    output: dict[str, Any] | None = None
    blogPost: BlogPostSummary | None = None
    isStuck: bool = False


class JobListItem(BaseModel):
    id: str
    status: str
    currentStep: str | None
    progress: int
    error: str | None
    keywordId: str | None
    keyword: str | None
    createdAt: datetime
    startedAt: datetime | None
    blogPostId: str | None


class QueuedJob(BaseModel):
    jobId: str
    keyword: str


class GenerateResponse(BaseModel):
    jobId: str
    keyword: str
    message: str
    remaining: int | None


class BulkGenerateResponse(BaseModel):
    queued: int
    jobs: list[QueuedJob]
    message: str


class RetryResponse(BaseModel):
    success: bool
    message: str


class WorkerResponse(BaseModel):
    processed: bool
    jobId: str | None = None
    reason: str | None = None


class CronWebsiteResult(BaseModel):
    websiteId: str
    name: str
    action: str
    jobId: str | None = None


class CronScheduledResult(BaseModel):
    postId: str
    title: str


class CronResponse(BaseModel):
    recoveredJobs: int
    scheduledPublished: int
    queued: int
    results: list[CronWebsiteResult]
    scheduledResults: list[CronScheduledResult]


class JobListResponse(BaseModel):
    jobs: list[JobListItem]


class PublicGenerateData(BaseModel):
    jobId: str
    keywordId: str
    keyword: str
    status: str


class PublicGenerateMeta(BaseModel):
    remaining: int | None


class PublicGenerateResponse(BaseModel):
    """Envelope used by the public v1 API."""

    data: PublicGenerateData
    meta: PublicGenerateMeta
