"""
OpenAI-backed implementation of the content pipeline.

Each step is one model call whose output is stored on the pipeline context
for the following steps. Prompts are deliberately short; the orchestrator
only relies on the step contract (artifact on success, exception on failure).
"""

from typing import Any

import backoff
from httpx import HTTPStatusError
from openai import AsyncOpenAI, RateLimitError
from pydantic import BaseModel, Field, ValidationError

from autoblog.config import get_settings
from autoblog.core.logging import get_logger
from autoblog.generation.errors import PipelineStepError
from autoblog.models.website import ContentLength
from autoblog.pipeline.content import STEPS, PipelineContext
from autoblog.pipeline.text import count_words, first_heading, reading_time_minutes, slugify
from autoblog.schemas.pipeline import GeneratedPost, SocialCaptions

logger = get_logger(__name__)

WORD_TARGETS: dict[ContentLength, str] = {
    ContentLength.SHORT: "800-1200",
    ContentLength.MEDIUM: "1500-2500",
    ContentLength.LONG: "2500-4000",
    ContentLength.PILLAR: "4000-6000",
}

MAX_OUTPUT_TOKENS: dict[ContentLength, int] = {
    ContentLength.SHORT: 8192,
    ContentLength.MEDIUM: 12288,
    ContentLength.LONG: 16384,
    ContentLength.PILLAR: 16384,
}


class ResearchNotes(BaseModel):
    search_intent: str = ""
    key_points: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    secondary_keywords: list[str] = Field(default_factory=list)


class PostMetadata(BaseModel):
    title: str
    meta_title: str = ""
    meta_description: str = ""
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = ""
    image_prompt: str = ""
    image_alt: str = ""
    social_captions: SocialCaptions = Field(default_factory=SocialCaptions)


def _system_prompt(context: PipelineContext) -> str:
    site = context.website
    lines = [f"You write blog content for {site.brand_name or site.domain}."]
    if site.niche:
        lines.append(f"Niche: {site.niche}.")
    if site.target_audience:
        lines.append(f"Audience: {site.target_audience}.")
    if site.tone:
        lines.append(f"Tone: {site.tone}.")
    lines.append("Write in Markdown. Never invent statistics or quotes.")
    return "\n".join(lines)


class OpenAIContentPipeline:
    """Runs research → outline → draft → tone → SEO → metadata → image with OpenAI."""

    steps = STEPS

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        settings = get_settings()
        self._client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self._model = model or settings.llm_model
        self._image_model = settings.image_model

    async def run_step(self, step: str, context: PipelineContext) -> Any:
        handler = getattr(self, f"_step_{step}", None)
        if handler is None:
            raise PipelineStepError(step, f"Unknown pipeline step: {step}")

        try:
            artifact = await handler(context)
        except PipelineStepError:
            raise
        except (ValidationError, ValueError) as e:
            raise PipelineStepError(step, f"{step} step returned malformed output: {e}") from e

        context.artifacts[step] = artifact
        logger.bind(step=step, keyword=context.keyword).debug("pipeline_step_completed")
        return artifact

    def build_post(self, context: PipelineContext) -> GeneratedPost:
        research: ResearchNotes = context.artifacts["research"]
        metadata: PostMetadata = context.artifacts["metadata"]
        content: str = context.artifacts["seo"]
        words = count_words(content)

        return GeneratedPost(
            title=metadata.title,
            slug=slugify(metadata.title),
            content=content,
            excerpt=metadata.excerpt,
            meta_title=metadata.meta_title or metadata.title,
            meta_description=metadata.meta_description,
            focus_keyword=context.keyword,
            secondary_keywords=research.secondary_keywords,
            featured_image_url=context.artifacts.get("image"),
            featured_image_alt=metadata.image_alt or None,
            structured_data={
                "@context": "https://schema.org",
                "@type": "BlogPosting",
                "headline": metadata.title,
                "description": metadata.meta_description,
                "keywords": ", ".join([context.keyword, *research.secondary_keywords]),
                "wordCount": words,
            },
            social_captions=metadata.social_captions,
            word_count=words,
            reading_time=reading_time_minutes(words),
            tags=metadata.tags,
            category=metadata.category,
            research_data=research.model_dump(),
            model=self._model,
        )

    # --- steps ---------------------------------------------------------

    async def _step_research(self, context: PipelineContext) -> ResearchNotes:
        raw = await self._complete(
            context,
            f'Research the keyword "{context.keyword}". Reply with JSON containing '
            "search_intent, key_points, questions and secondary_keywords.",
            json_output=True,
        )
        return ResearchNotes.model_validate_json(raw)

    async def _step_outline(self, context: PipelineContext) -> str:
        research: ResearchNotes = context.artifacts["research"]
        faq = "Finish with an FAQ section." if context.include_faq else ""
        return await self._complete(
            context,
            f'Outline an article for "{context.keyword}" '
            f"({WORD_TARGETS[context.content_length]} words). {faq}\n"
            f"Key points: {research.key_points}\nReader questions: {research.questions}",
        )

    async def _step_draft(self, context: PipelineContext) -> str:
        return await self._complete(
            context,
            f"Write the full article from this outline, "
            f"{WORD_TARGETS[context.content_length]} words:\n\n{context.artifacts['outline']}",
        )

    async def _step_tone(self, context: PipelineContext) -> str:
        return await self._complete(
            context,
            "Rewrite this article in the brand voice. Remove filler and generic phrasing, "
            f"keep every section and fact:\n\n{context.artifacts['draft']}",
        )

    async def _step_seo(self, context: PipelineContext) -> str:
        toned: str = context.artifacts["tone"]
        optimized = await self._complete(
            context,
            f'Optimize this article for the keyword "{context.keyword}" without shortening it. '
            f"Return the full article:\n\n{toned}",
        )
        # The optimizer sometimes truncates; keep the longer tone-matched text then
        if count_words(optimized) < count_words(toned) * 0.7:
            logger.bind(keyword=context.keyword).warning("seo_step_truncated_article")
            return toned
        return optimized

    async def _step_metadata(self, context: PipelineContext) -> PostMetadata:
        content: str = context.artifacts["seo"]
        raw = await self._complete(
            context,
            "Produce JSON metadata for this article with keys title, meta_title, "
            "meta_description, excerpt, tags, category, image_prompt, image_alt and "
            "social_captions (twitter, linkedin, instagram, facebook):\n\n" + content[:6000],
            json_output=True,
        )
        metadata = PostMetadata.model_validate_json(raw)
        if not metadata.title:
            metadata.title = first_heading(content) or context.keyword.title()
        return metadata

    async def _step_image(self, context: PipelineContext) -> str | None:
        if not context.include_images:
            return None
        metadata: PostMetadata = context.artifacts["metadata"]
        prompt = metadata.image_prompt or f"Editorial illustration for an article about {context.keyword}"
        response = await self._client.images.generate(
            model=self._image_model,
            prompt=prompt,
            size="1792x1024",
            n=1,
        )
        return response.data[0].url if response.data else None

    # --- model access --------------------------------------------------

    @backoff.on_exception(
        backoff.expo,
        (RateLimitError, HTTPStatusError),
        max_tries=5,
        max_time=120,
    )
    async def _complete(
        self,
        context: PipelineContext,
        prompt: str,
        json_output: bool = False,
    ) -> str:
        kwargs: dict[str, Any] = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": _system_prompt(context)},
                {"role": "user", "content": prompt},
            ],
            max_tokens=MAX_OUTPUT_TOKENS[context.content_length],
            temperature=0.7,
            **kwargs,
        )
        text = response.choices[0].message.content or ""
        if not text.strip():
            raise ValueError("empty completion")

        if response.usage:
            logger.bind(
                keyword=context.keyword,
                tokens=response.usage.total_tokens,
            ).debug("pipeline_completion")
        return text
