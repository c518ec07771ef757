"""
Content pipeline contract.

The orchestrator treats generation as an ordered list of named steps. It
drives the steps one at a time (each step consumes the artifacts of the
previous ones), records progress between them, and asks the pipeline to
assemble the final post once every step has succeeded.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from autoblog.models.website import ContentLength
from autoblog.schemas.pipeline import GeneratedPost, GenerationProgress

STEPS: tuple[str, ...] = (
    "research",
    "outline",
    "draft",
    "tone",
    "seo",
    "metadata",
    "image",
)

# Steps during which the keyword is reported as "generating"
WRITING_STEPS = frozenset({"draft", "tone"})


@dataclass
class WebsiteBrief:
    """The slice of a website the pipeline is allowed to see."""

    id: str
    brand_name: str
    domain: str
    niche: str | None = None
    target_audience: str | None = None
    tone: str | None = None


@dataclass
class PipelineContext:
    """Mutable state threaded through the steps of one job."""

    keyword: str
    website: WebsiteBrief
    content_length: ContentLength = ContentLength.MEDIUM
    include_images: bool = True
    include_faq: bool = True
    artifacts: dict[str, Any] = field(default_factory=dict)


class ContentPipeline(Protocol):
    """Anything that can run the generation steps."""

    steps: tuple[str, ...]

    async def run_step(self, step: str, context: PipelineContext) -> Any:
        """Run one step, store its artifact on the context and return it.

        Raises on failure; the orchestrator records the failure on the job.
        """
        ...

    def build_post(self, context: PipelineContext) -> GeneratedPost:
        """Assemble the final post from the step artifacts."""
        ...


def step_progress(step: str, steps: tuple[str, ...] = STEPS) -> GenerationProgress:
    """Progress reported when `step` starts: share of steps already finished."""
    index = steps.index(step)
    return GenerationProgress(
        step=step,
        step_index=index,
        total_steps=len(steps),
        percentage=round(index / len(steps) * 100),
    )
