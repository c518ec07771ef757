"""Domain errors raised by the generation orchestrator.

API handlers render every GenerationError as `{"error": message}` with the
class's status_code, so services raise these instead of HTTPException.
"""

from typing import Any


class GenerationError(Exception):
    """Base class for orchestrator errors surfaced to callers."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra


class JobNotFoundError(GenerationError):
    status_code = 404

    def __init__(self, job_id: str) -> None:
        super().__init__("Job not found", jobId=job_id)


class JobConflictError(GenerationError):
    """The job (or website) already has an active job."""

    status_code = 409


class WebsiteNotFoundError(GenerationError):
    status_code = 404

    def __init__(self) -> None:
        super().__init__("Website not found")


class WebsiteInactiveError(GenerationError):
    status_code = 403

    def __init__(self) -> None:
        super().__init__(
            "Website is paused or deleted. Resume it from settings to generate content."
        )


class AdmissionDeniedError(GenerationError):
    """Monthly quota exhausted."""

    status_code = 429


class NoPendingKeywordsError(GenerationError):
    status_code = 400

    def __init__(self, message: str = "No pending keywords in queue. Add keywords first.") -> None:
        super().__init__(message)


class PipelineStepError(Exception):
    """A content pipeline step failed; terminal for the job."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(message)
        self.step = step
        self.message = message
