from autoblog.schemas.job import (
    BulkGenerateRequest,
    GenerateRequest,
    JobInput,
    JobStatusResponse,
    WorkerRequest,
)
from autoblog.schemas.pipeline import GeneratedPost, GenerationProgress, SocialCaptions

__all__ = [
    "JobInput",
    "GenerateRequest",
    "BulkGenerateRequest",
    "WorkerRequest",
    "JobStatusResponse",
    "GeneratedPost",
    "GenerationProgress",
    "SocialCaptions",
]
