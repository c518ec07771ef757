from autoblog.pipeline.content import (
    STEPS,
    ContentPipeline,
    PipelineContext,
    WebsiteBrief,
    step_progress,
)

__all__ = [
    "STEPS",
    "ContentPipeline",
    "PipelineContext",
    "WebsiteBrief",
    "step_progress",
    "get_default_pipeline",
]


def get_default_pipeline() -> ContentPipeline:
    """Build the production pipeline (imports the OpenAI client lazily)."""
    from autoblog.pipeline.openai_pipeline import OpenAIContentPipeline

    return OpenAIContentPipeline()
