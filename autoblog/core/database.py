import ssl
from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autoblog.config import get_settings
from autoblog.core.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()

LOCAL_HOSTS = ("localhost", "127.0.0.1", "db")


def prepare_database_url(url: str) -> tuple[str, dict]:
    """
    Strip libpq-only query params that asyncpg rejects and derive connect_args.

    Hosted Postgres URLs usually carry sslmode/channel_binding; asyncpg wants
    an SSL context instead. Local hosts and SQLite URLs get no SSL.
    """
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url, {}

    params = parse_qs(parsed.query)
    for param in ("sslmode", "channel_binding", "options"):
        params.pop(param, None)

    clean_url = urlunparse(parsed._replace(query=urlencode(params, doseq=True)))

    hostname = parsed.hostname or ""
    if hostname in LOCAL_HOSTS:
        return clean_url, {}
    return clean_url, {"ssl": ssl.create_default_context()}


clean_url, connect_args = prepare_database_url(settings.database_url)

engine = create_async_engine(
    clean_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    pool_recycle=280,
    connect_args=connect_args,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.bind(error=str(e)).error("database_transaction_rollback")
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives a request (executor, worker pull)."""
    return AsyncSessionLocal
