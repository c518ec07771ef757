"""Contract between the orchestrator and the content pipeline."""

from typing import Any

from pydantic import BaseModel, Field


class SocialCaptions(BaseModel):
    twitter: str = ""
    linkedin: str = ""
    instagram: str = ""
    facebook: str = ""


class GeneratedPost(BaseModel):
    """Final artifact of a successful pipeline run."""

    title: str
    slug: str
    content: str
    excerpt: str = ""
    meta_title: str = ""
    meta_description: str = ""
    focus_keyword: str = ""
    secondary_keywords: list[str] = Field(default_factory=list)
    featured_image_url: str | None = None
    featured_image_alt: str | None = None
    structured_data: dict[str, Any] = Field(default_factory=dict)
    social_captions: SocialCaptions = Field(default_factory=SocialCaptions)
    word_count: int = 0
    reading_time: int = 0
    tags: list[str] = Field(default_factory=list)
    category: str = ""
    research_data: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None


class GenerationProgress(BaseModel):
    """Progress report emitted after each pipeline step."""

    step: str
    step_index: int
    total_steps: int
    message: str = ""
    percentage: int
