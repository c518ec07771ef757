"""
Tests for the OpenAI-backed content pipeline.

The OpenAI client is replaced by a scripted fake that answers each call
from a queue of canned completions.
"""

import json
from types import SimpleNamespace

import pytest

from autoblog.generation.errors import PipelineStepError
from autoblog.pipeline.content import PipelineContext, WebsiteBrief
from autoblog.pipeline.openai_pipeline import OpenAIContentPipeline

pytestmark = pytest.mark.asyncio

ARTICLE = "# Cold Brew Guide\n\n" + "Steep coarse coffee overnight. " * 120

RESEARCH = json.dumps(
    {
        "search_intent": "informational",
        "key_points": ["ratio", "steep time"],
        "questions": ["How long to steep?"],
        "secondary_keywords": ["cold brew ratio"],
    }
)

METADATA = json.dumps(
    {
        "title": "Cold Brew Guide",
        "meta_description": "Make cold brew at home",
        "excerpt": "Everything about cold brew",
        "tags": ["coffee"],
        "category": "Guides",
        "image_alt": "A jar of cold brew",
        "social_captions": {"twitter": "Cold brew, simplified"},
    }
)


class ScriptedOpenAI:
    """Minimal stand-in for AsyncOpenAI: chat completions and image generation."""

    def __init__(self, completions: list[str], image_url: str = "https://img.example.com/1.png"):
        self._completions = list(completions)
        self.requests: list[dict] = []
        self.image_calls = 0
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.images = SimpleNamespace(generate=self._generate)
        self._image_url = image_url

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        content = self._completions.pop(0)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(total_tokens=100),
        )

    async def _generate(self, **kwargs):
        self.image_calls += 1
        return SimpleNamespace(data=[SimpleNamespace(url=self._image_url)])


def _context(include_images: bool = True) -> PipelineContext:
    return PipelineContext(
        keyword="cold brew",
        website=WebsiteBrief(id="site-1", brand_name="Bean There", domain="bean.example.com"),
        include_images=include_images,
    )


async def _run_all(pipeline: OpenAIContentPipeline, context: PipelineContext) -> None:
    for step in pipeline.steps:
        await pipeline.run_step(step, context)


class TestOpenAIContentPipeline:
    """Tests for step execution and post assembly."""

    async def test_full_run_builds_post(self):
        client = ScriptedOpenAI([RESEARCH, "outline", ARTICLE, ARTICLE, ARTICLE, METADATA])
        pipeline = OpenAIContentPipeline(client=client, model="test-model")
        context = _context()

        await _run_all(pipeline, context)
        post = pipeline.build_post(context)

        assert post.title == "Cold Brew Guide"
        assert post.slug == "cold-brew-guide"
        assert post.focus_keyword == "cold brew"
        assert post.secondary_keywords == ["cold brew ratio"]
        assert post.featured_image_url == "https://img.example.com/1.png"
        assert post.social_captions.twitter == "Cold brew, simplified"
        assert post.word_count > 0
        assert post.model == "test-model"
        assert client.requests[0]["response_format"] == {"type": "json_object"}

    async def test_images_skipped_when_disabled(self):
        client = ScriptedOpenAI([RESEARCH, "outline", ARTICLE, ARTICLE, ARTICLE, METADATA])
        pipeline = OpenAIContentPipeline(client=client)
        context = _context(include_images=False)

        await _run_all(pipeline, context)

        assert client.image_calls == 0
        assert pipeline.build_post(context).featured_image_url is None

    async def test_truncated_seo_output_keeps_toned_article(self):
        client = ScriptedOpenAI([RESEARCH, "outline", ARTICLE, ARTICLE, "# Cut short"])
        pipeline = OpenAIContentPipeline(client=client)
        context = _context()

        for step in ("research", "outline", "draft", "tone", "seo"):
            await pipeline.run_step(step, context)

        assert context.artifacts["seo"] == ARTICLE

    async def test_malformed_research_is_a_step_error(self):
        pipeline = OpenAIContentPipeline(client=ScriptedOpenAI(["not json"]))

        with pytest.raises(PipelineStepError) as exc_info:
            await pipeline.run_step("research", _context())
        assert exc_info.value.step == "research"

    async def test_empty_completion_is_a_step_error(self):
        pipeline = OpenAIContentPipeline(client=ScriptedOpenAI([RESEARCH, "   "]))
        context = _context()
        await pipeline.run_step("research", context)

        with pytest.raises(PipelineStepError) as exc_info:
            await pipeline.run_step("outline", context)
        assert exc_info.value.step == "outline"

    async def test_unknown_step(self):
        pipeline = OpenAIContentPipeline(client=ScriptedOpenAI([]))
        with pytest.raises(PipelineStepError, match="Unknown pipeline step"):
            await pipeline.run_step("translate", _context())
