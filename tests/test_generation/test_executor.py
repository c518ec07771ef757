"""
Tests for the pipeline executor.

Covers the happy path, step failures, duplicate dispatch, quota accounting,
auto-publish and jobs that are taken away mid-run by the recovery sweep.
"""

import asyncio
from unittest.mock import patch

import pytest
from openai import OpenAIError
from sqlalchemy import func, select, update

from autoblog.generation import executor, store
from autoblog.generation.executor import CANCELLED_ERROR, process_job
from autoblog.models import (
    BlogPost,
    GenerationJob,
    JobStatus,
    KeywordStatus,
    PostStatus,
    QuotaUsage,
    Subscription,
)
from autoblog.pipeline import STEPS, step_progress

pytestmark = pytest.mark.asyncio


class RecordingHook:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.fail = fail

    async def __call__(self, db, post_id: str, website_id: str, triggered_by: str):
        self.calls.append((post_id, website_id, triggered_by))
        if self.fail:
            raise RuntimeError("hook blew up")
        return []


async def _queued_job(website_factory, keyword_factory, job_factory, **kwargs):
    website = await website_factory(**kwargs.pop("website_kwargs", {}))
    keyword = await keyword_factory(website)
    job = await job_factory(website, keyword, **kwargs)
    return website, keyword, job


class TestProcessJobSuccess:
    """Tests for a job that runs to completion."""

    async def test_completes_job_post_and_keyword(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        website, keyword, job = await _queued_job(website_factory, keyword_factory, job_factory)
        pipeline = pipeline_cls()

        outcome = await process_job(job.id, session_factory=session_factory, pipeline=pipeline)

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.blog_post_id is not None
        assert pipeline.calls == list(pipeline.steps)

        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.COMPLETED
        assert fresh.progress == 100
        assert fresh.current_step == "done"
        assert fresh.blog_post_id == outcome.blog_post_id
        assert fresh.output["slug"] == "how-to-brew-coffee"

        post = await db_session.get(BlogPost, outcome.blog_post_id)
        assert post.status == PostStatus.REVIEW
        assert post.published_at is None
        assert post.focus_keyword == "best coffee beans"
        assert post.research_data == {
            "search_intent": "informational",
            "artifact": "research for best coffee beans",
        }

        await db_session.refresh(keyword)
        assert keyword.status == KeywordStatus.COMPLETED
        assert keyword.blog_post_id == post.id

    async def test_counts_quota_once(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)

        await process_job(job.id, session_factory=session_factory, pipeline=pipeline_cls())

        subscription = (
            await db_session.execute(
                select(Subscription)
                .where(Subscription.organization_id == website.organization_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        assert subscription.posts_generated_this_month == 1

        usage = await db_session.execute(
            select(func.count()).select_from(QuotaUsage).where(QuotaUsage.job_id == job.id)
        )
        assert usage.scalar_one() == 1

    async def test_duplicate_slug_gets_suffix(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
        post_factory,
    ):
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)
        await post_factory(website, slug="how-to-brew-coffee")

        outcome = await process_job(job.id, session_factory=session_factory, pipeline=pipeline_cls())

        post = await db_session.get(BlogPost, outcome.blog_post_id)
        assert post.slug == "how-to-brew-coffee-1"

    async def test_auto_publish_publishes_and_runs_hook(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        website, _, job = await _queued_job(
            website_factory, keyword_factory, job_factory, auto_publish=True
        )
        hook = RecordingHook()

        outcome = await process_job(
            job.id, session_factory=session_factory, pipeline=pipeline_cls(), publish_hook=hook
        )

        post = await db_session.get(BlogPost, outcome.blog_post_id)
        assert post.status == PostStatus.PUBLISHED
        assert post.published_at is not None
        assert hook.calls == [(post.id, website.id, "auto")]

    async def test_review_post_skips_hook(
        self, pipeline_cls, session_factory, website_factory, keyword_factory, job_factory
    ):
        _, _, job = await _queued_job(website_factory, keyword_factory, job_factory)
        hook = RecordingHook()

        await process_job(
            job.id, session_factory=session_factory, pipeline=pipeline_cls(), publish_hook=hook
        )
        assert hook.calls == []

    async def test_hook_failure_keeps_job_completed(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        _, _, job = await _queued_job(
            website_factory, keyword_factory, job_factory, auto_publish=True
        )

        outcome = await process_job(
            job.id,
            session_factory=session_factory,
            pipeline=pipeline_cls(),
            publish_hook=RecordingHook(fail=True),
        )

        assert outcome.status == JobStatus.COMPLETED
        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.COMPLETED


    async def test_progress_advances_step_by_step(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        _, _, job = await _queued_job(website_factory, keyword_factory, job_factory)
        job_id = job.id

        class ProgressSpy(pipeline_cls):
            """Reads the job's stored progress as each step starts."""

            def __init__(self) -> None:
                super().__init__()
                self.seen: list[tuple[str, int]] = []

            async def run_step(self, step, context):
                async with session_factory() as db:
                    running = await store.get_job(db, job_id)
                    self.seen.append((running.current_step, running.progress))
                return await super().run_step(step, context)

        pipeline = ProgressSpy()
        await process_job(job_id, session_factory=session_factory, pipeline=pipeline)

        assert pipeline.seen == [(step, step_progress(step).percentage) for step in STEPS]
        progress = [value for _, value in pipeline.seen]
        assert progress[0] == 0
        assert progress == sorted(progress)

        fresh = await store.get_job(db_session, job_id)
        assert fresh.progress == 100
        assert fresh.progress > progress[-1]


class TestProcessJobFailure:
    """Tests for jobs whose pipeline fails."""

    async def test_step_failure_fails_job_and_keyword(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        website, keyword, job = await _queued_job(website_factory, keyword_factory, job_factory)
        pipeline = pipeline_cls(fail_at="tone")

        outcome = await process_job(job.id, session_factory=session_factory, pipeline=pipeline)

        assert outcome.status == JobStatus.FAILED
        assert outcome.error == "tone exploded"
        assert "seo" not in pipeline.calls

        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.FAILED
        assert fresh.error == "tone exploded"
        assert fresh.current_step == "tone"
        assert fresh.completed_at is not None

        await db_session.refresh(keyword)
        assert keyword.status == KeywordStatus.FAILED
        assert keyword.retry_count == 1

    async def test_failure_creates_no_post_and_no_usage(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)

        await process_job(
            job.id, session_factory=session_factory, pipeline=pipeline_cls(fail_at="research")
        )

        posts = await db_session.execute(
            select(func.count()).select_from(BlogPost).where(BlogPost.website_id == website.id)
        )
        assert posts.scalar_one() == 0
        usage = await db_session.execute(select(func.count()).select_from(QuotaUsage))
        assert usage.scalar_one() == 0


    async def test_default_pipeline_error_fails_job(
        self, db_session, session_factory, website_factory, keyword_factory, job_factory
    ):
        """A pipeline that cannot be built (no OpenAI key) still ends the job."""
        _, keyword, job = await _queued_job(website_factory, keyword_factory, job_factory)
        missing_key = OpenAIError("Missing credentials. Please pass an `api_key`.")

        with patch.object(executor, "get_default_pipeline", side_effect=missing_key):
            outcome = await process_job(job.id, session_factory=session_factory)

        assert outcome.status == JobStatus.FAILED
        assert outcome.error.startswith("Missing credentials")

        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.FAILED
        assert fresh.error.startswith("Missing credentials")
        assert fresh.completed_at is not None

        await db_session.refresh(keyword)
        assert keyword.status == KeywordStatus.FAILED


class TestProcessJobConcurrency:
    """Tests for duplicate dispatch and supersession."""

    async def test_not_queued_job_is_skipped(
        self, pipeline_cls, session_factory, website_factory, keyword_factory, job_factory
    ):
        _, _, job = await _queued_job(
            website_factory, keyword_factory, job_factory, status=JobStatus.COMPLETED
        )
        pipeline = pipeline_cls()

        assert await process_job(job.id, session_factory=session_factory, pipeline=pipeline) is None
        assert pipeline.calls == []

    async def test_concurrent_dispatch_runs_once(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        """Two executors racing on one job: one runs, one is skipped, quota counted once."""
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)

        outcomes = await asyncio.gather(
            process_job(job.id, session_factory=session_factory, pipeline=pipeline_cls()),
            process_job(job.id, session_factory=session_factory, pipeline=pipeline_cls()),
        )

        assert sum(1 for o in outcomes if o is None) == 1
        posts = await db_session.execute(
            select(func.count()).select_from(BlogPost).where(BlogPost.website_id == website.id)
        )
        assert posts.scalar_one() == 1
        usage = await db_session.execute(select(func.count()).select_from(QuotaUsage))
        assert usage.scalar_one() == 1

    async def test_job_expired_mid_run_is_not_completed(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        """A job failed by the sweep while a step runs stops at the next step."""
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)

        class ExpiringPipeline(pipeline_cls):
            async def run_step(self, step, context):
                result = await super().run_step(step, context)
                if step == "draft":
                    async with session_factory() as db:
                        await db.execute(
                            update(GenerationJob)
                            .where(GenerationJob.id == job.id)
                            .values(status=JobStatus.FAILED, error="Job timed out")
                        )
                        await db.commit()
                return result

        pipeline = ExpiringPipeline()
        outcome = await process_job(job.id, session_factory=session_factory, pipeline=pipeline)

        assert outcome.superseded is True
        assert pipeline.calls[-1] == "draft"

        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.FAILED
        assert fresh.error == "Job timed out"
        posts = await db_session.execute(
            select(func.count()).select_from(BlogPost).where(BlogPost.website_id == website.id)
        )
        assert posts.scalar_one() == 0

    async def test_job_expired_before_save_discards_post(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        """Completion after the job left processing rolls the whole save back."""
        website, _, job = await _queued_job(website_factory, keyword_factory, job_factory)

        class ExpiringOnBuild(pipeline_cls):
            async def run_step(self, step, context):
                result = await super().run_step(step, context)
                if step == self.steps[-1]:
                    async with session_factory() as db:
                        await db.execute(
                            update(GenerationJob)
                            .where(GenerationJob.id == job.id)
                            .values(status=JobStatus.FAILED)
                        )
                        await db.commit()
                return result

        outcome = await process_job(
            job.id, session_factory=session_factory, pipeline=ExpiringOnBuild()
        )

        assert outcome.superseded is True
        posts = await db_session.execute(
            select(func.count()).select_from(BlogPost).where(BlogPost.website_id == website.id)
        )
        assert posts.scalar_one() == 0
        usage = await db_session.execute(select(func.count()).select_from(QuotaUsage))
        assert usage.scalar_one() == 0

    async def test_cancellation_records_failure(
        self,
        pipeline_cls,
        db_session,
        session_factory,
        website_factory,
        keyword_factory,
        job_factory,
    ):
        _, _, job = await _queued_job(website_factory, keyword_factory, job_factory)
        started = asyncio.Event()

        class HangingPipeline(pipeline_cls):
            async def run_step(self, step, context):
                started.set()
                await asyncio.sleep(3600)

        task = asyncio.create_task(
            process_job(job.id, session_factory=session_factory, pipeline=HangingPipeline())
        )
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        fresh = await store.get_job(db_session, job.id)
        assert fresh.status == JobStatus.FAILED
        assert fresh.error == CANCELLED_ERROR
