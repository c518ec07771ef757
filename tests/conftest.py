"""
Pytest configuration and fixtures for Autoblog tests.

Provides:
- Async test database with SQLite (one file per test, so the executor's own
  sessions see committed rows exactly like separate workers would)
- Test client for API testing
- Factory fixtures for creating test data
- A fake content pipeline and a recording dispatcher
"""

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autoblog.config import Settings, get_settings
from autoblog.core.database import get_db, get_session_factory
from autoblog.core.datetime_utils import utc_now
from autoblog.core.security import generate_api_key, hash_token
from autoblog.dependencies import get_api_key_cache, get_pipeline
from autoblog.generation.dispatcher import get_dispatcher
from autoblog.main import app
from autoblog.models import (
    ApiKey,
    Base,
    BlogPost,
    BlogSettings,
    ContentLength,
    GenerationJob,
    JobStatus,
    Keyword,
    KeywordStatus,
    Organization,
    PostStatus,
    Subscription,
    Website,
    WebsiteStatus,
)
from autoblog.pipeline.content import STEPS, PipelineContext
from autoblog.pipeline.text import count_words, slugify
from autoblog.schemas.job import JobInput
from autoblog.schemas.pipeline import GeneratedPost, SocialCaptions

CRON_SECRET = "test-cron-secret"


# Override settings for testing
class TestSettings(Settings):
    database_url: str = "sqlite+aiosqlite:///:memory:"
    debug: bool = True
    openai_api_key: str = "test-key"
    resend_api_key: str = ""
    cron_secret: str = CRON_SECRET
    base_url: str = "http://localhost:8000"
    scheduler_enabled: bool = False


class FakePipeline:
    """Deterministic pipeline: every step stores a string, optional failure at one step."""

    steps = STEPS

    def __init__(self, fail_at: str | None = None, title: str = "How To Brew Coffee") -> None:
        self.fail_at = fail_at
        self.title = title
        self.calls: list[str] = []

    async def run_step(self, step: str, context: PipelineContext) -> Any:
        self.calls.append(step)
        if step == self.fail_at:
            raise RuntimeError(f"{step} exploded")
        artifact = f"{step} for {context.keyword}"
        context.artifacts[step] = artifact
        return artifact

    def build_post(self, context: PipelineContext) -> GeneratedPost:
        content = f"# {self.title}\n\nA guide about {context.keyword}. " + "word " * 300
        return GeneratedPost(
            title=self.title,
            slug=slugify(self.title),
            content=content,
            excerpt="A short guide",
            meta_title=self.title,
            meta_description="Everything about coffee",
            focus_keyword=context.keyword,
            tags=["coffee", "brewing"],
            social_captions=SocialCaptions(twitter="Fresh post about coffee"),
            research_data={
                "search_intent": "informational",
                "artifact": context.artifacts.get("research"),
            },
            word_count=count_words(content),
            reading_time=2,
            model="fake-model",
        )


class RecordingDispatcher:
    """Stands in for JobDispatcher in API tests: remembers what was dispatched."""

    mode = "inline"

    def __init__(self) -> None:
        self.dispatched: list[str] = []

    def dispatch(self, job_id: str) -> None:
        self.dispatched.append(job_id)

    async def drain(self, timeout: float | None = None) -> None:
        return None


@pytest.fixture
def test_settings() -> TestSettings:
    return TestSettings()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create async test database engine backed by a temporary file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the executor, dispatcher and worker."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def pipeline_cls() -> type[FakePipeline]:
    """The fake pipeline class, for tests that subclass or configure it."""
    return FakePipeline


@pytest.fixture
def fake_pipeline() -> FakePipeline:
    return FakePipeline()


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def client(
    session_factory,
    test_settings,
    fake_pipeline,
    recording_dispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database, dispatcher and pipeline overrides."""
    from autoblog.core.rate_limit import limiter

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: recording_dispatcher
    app.dependency_overrides[get_pipeline] = lambda: fake_pipeline

    # Reset rate limiter storage and API key cache before each test
    limiter.reset()
    get_api_key_cache().clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def org_factory(db_session: AsyncSession):
    """Factory for organizations, with a subscription unless max_posts is None."""

    async def _create_org(
        name: str = "Acme",
        max_posts: int | None = 10,
        used: int = 0,
        plan: str = "PRO",
    ) -> Organization:
        org = Organization(name=name)
        db_session.add(org)
        await db_session.flush()

        if max_posts is not None:
            db_session.add(
                Subscription(
                    organization_id=org.id,
                    plan=plan,
                    max_posts_per_month=max_posts,
                    posts_generated_this_month=used,
                )
            )
        await db_session.commit()
        return org

    return _create_org


@pytest_asyncio.fixture
async def website_factory(db_session: AsyncSession, org_factory):
    """Factory for websites with blog settings."""

    async def _create_website(
        organization: Organization | None = None,
        name: str = "Coffee Blog",
        domain: str = "coffee.example.com",
        status: WebsiteStatus = WebsiteStatus.ACTIVE,
        auto_publish: bool = False,
        publish_time: str | None = None,
        timezone: str = "UTC",
        **channel_config: Any,
    ) -> Website:
        if organization is None:
            organization = await org_factory()

        website = Website(
            organization_id=organization.id,
            name=name,
            domain=domain,
            brand_name=name,
            status=status,
            timezone=timezone,
            **channel_config,
        )
        db_session.add(website)
        await db_session.flush()

        db_session.add(
            BlogSettings(
                website_id=website.id,
                auto_publish=auto_publish,
                content_length=ContentLength.MEDIUM,
                include_images=False,
                include_faq=True,
                publish_time=publish_time,
                publish_window_minutes=60,
            )
        )
        await db_session.commit()
        return website

    return _create_website


@pytest_asyncio.fixture
async def keyword_factory(db_session: AsyncSession):
    """Factory for keywords."""

    async def _create_keyword(
        website: Website,
        keyword: str = "best coffee beans",
        priority: int = 0,
        status: KeywordStatus = KeywordStatus.PENDING,
        created_offset_minutes: int = 0,
    ) -> Keyword:
        kw = Keyword(
            website_id=website.id,
            keyword=keyword,
            priority=priority,
            status=status,
            created_at=utc_now() - timedelta(minutes=created_offset_minutes),
        )
        db_session.add(kw)
        await db_session.commit()
        return kw

    return _create_keyword


@pytest_asyncio.fixture
async def job_factory(db_session: AsyncSession):
    """Factory for generation jobs in any state."""

    async def _create_job(
        website: Website,
        keyword: Keyword | None = None,
        status: JobStatus = JobStatus.QUEUED,
        started_minutes_ago: int | None = None,
        auto_publish: bool = False,
        created_offset_minutes: int = 0,
        **fields: Any,
    ) -> GenerationJob:
        job_input = JobInput(
            website_id=website.id,
            keyword_id=keyword.id if keyword else None,
            keyword=keyword.keyword if keyword else "best coffee beans",
            auto_publish=auto_publish,
        )
        job = GenerationJob(
            website_id=website.id,
            keyword_id=keyword.id if keyword else None,
            status=status,
            progress=fields.pop("progress", 0),
            input=job_input.model_dump(by_alias=True, mode="json"),
            created_at=utc_now() - timedelta(minutes=created_offset_minutes),
            **fields,
        )
        if started_minutes_ago is not None:
            job.started_at = utc_now() - timedelta(minutes=started_minutes_ago)
        db_session.add(job)
        await db_session.commit()
        return job

    return _create_job


@pytest_asyncio.fixture
async def post_factory(db_session: AsyncSession):
    """Factory for blog posts."""

    async def _create_post(
        website: Website,
        title: str = "Existing Post",
        slug: str | None = None,
        status: PostStatus = PostStatus.PUBLISHED,
        **fields: Any,
    ) -> BlogPost:
        post = BlogPost(
            website_id=website.id,
            title=title,
            slug=slug or slugify(title),
            content=fields.pop("content", "# Existing\n\nSome **markdown** content."),
            status=status,
            **fields,
        )
        db_session.add(post)
        await db_session.commit()
        return post

    return _create_post


@pytest_asyncio.fixture
async def api_key_factory(db_session: AsyncSession):
    """Factory for API keys. Returns (raw key, row)."""

    async def _create_api_key(
        organization: Organization,
        scopes: list[str] | None = None,
    ) -> tuple[str, ApiKey]:
        raw = generate_api_key()
        api_key = ApiKey(
            organization_id=organization.id,
            name="test",
            key_hash=hash_token(raw),
            scopes=scopes if scopes is not None else ["generate:write", "jobs:read"],
        )
        db_session.add(api_key)
        await db_session.commit()
        return raw, api_key

    return _create_api_key


@pytest_asyncio.fixture
async def auth_org(org_factory) -> Organization:
    """Organization the authenticated test client acts for."""
    return await org_factory(name="Authenticated Org")


@pytest_asyncio.fixture
async def auth_headers(auth_org, api_key_factory) -> dict[str, str]:
    """Bearer headers for an API key of auth_org with every scope."""
    raw, _ = await api_key_factory(auth_org)
    return {"Authorization": f"Bearer {raw}"}
