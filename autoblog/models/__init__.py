from autoblog.models.api_key import ApiKey
from autoblog.models.base import Base
from autoblog.models.blog_post import BlogPost, PostStatus
from autoblog.models.generation_job import ACTIVE_STATUSES, GenerationJob, JobStatus
from autoblog.models.job_run import JobRun
from autoblog.models.keyword import Keyword, KeywordStatus
from autoblog.models.organization import Organization, QuotaUsage, Subscription
from autoblog.models.website import BlogSettings, ContentLength, Website, WebsiteStatus

__all__ = [
    "Base",
    "Organization",
    "Subscription",
    "QuotaUsage",
    "Website",
    "WebsiteStatus",
    "BlogSettings",
    "ContentLength",
    "Keyword",
    "KeywordStatus",
    "BlogPost",
    "PostStatus",
    "GenerationJob",
    "JobStatus",
    "ACTIVE_STATUSES",
    "ApiKey",
    "JobRun",
]
