from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoblog.config import AppConfig, Settings, get_config, get_settings
from autoblog.core.cache import TTLCache
from autoblog.core.database import get_db, get_session_factory
from autoblog.core.datetime_utils import utc_now
from autoblog.core.security import extract_bearer_token, hash_token, verify_shared_secret
from autoblog.generation import store
from autoblog.generation.dispatcher import JobDispatcher, get_dispatcher
from autoblog.generation.errors import WebsiteNotFoundError
from autoblog.models import ApiKey, Website
from autoblog.pipeline import ContentPipeline, get_default_pipeline

# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Config = Annotated[AppConfig, Depends(get_config)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Dispatcher = Annotated[JobDispatcher, Depends(get_dispatcher)]


def get_pipeline() -> ContentPipeline:
    return get_default_pipeline()


Pipeline = Annotated[ContentPipeline, Depends(get_pipeline)]


@dataclass(frozen=True)
class ApiPrincipal:
    """Who is calling: a snapshot of the API key row, safe to cache across sessions."""

    api_key_id: str
    organization_id: str
    scopes: tuple[str, ...]

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes or "*" in self.scopes


@lru_cache
def get_api_key_cache() -> TTLCache[str, ApiPrincipal]:
    return TTLCache(ttl_seconds=get_config().public_api.api_key_cache_ttl_seconds)


async def get_current_principal(
    db: DBSession,
    authorization: str | None = Header(default=None),
) -> ApiPrincipal:
    """Resolve `Authorization: Bearer <api key>` to its organization."""
    token = extract_bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    key_hash = hash_token(token)
    cache = get_api_key_cache()
    principal = cache.get(key_hash)
    if principal is not None:
        return principal

    result = await db.execute(select(ApiKey).where(ApiKey.key_hash == key_hash))
    api_key = result.scalar_one_or_none()
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    # Only touched on cache misses, so at most once per TTL per key
    await db.execute(
        update(ApiKey)
        .where(ApiKey.id == api_key.id)
        .values(last_used_at=utc_now())
        .execution_options(synchronize_session=False)
    )

    principal = ApiPrincipal(
        api_key_id=api_key.id,
        organization_id=api_key.organization_id,
        scopes=tuple(api_key.scopes or ()),
    )
    cache.set(key_hash, principal)
    return principal


CurrentPrincipal = Annotated[ApiPrincipal, Depends(get_current_principal)]


def require_scope(scope: str):
    """Dependency factory: the caller's API key must carry `scope`."""

    async def _check(principal: CurrentPrincipal) -> ApiPrincipal:
        if not principal.has_scope(scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"API key lacks the {scope} scope",
            )
        return principal

    return _check


async def get_org_website(db: AsyncSession, website_id: str, principal: ApiPrincipal) -> Website:
    """Website owned by the caller's organization; 404 otherwise."""
    website = await store.get_website(db, website_id, principal.organization_id)
    if website is None:
        raise WebsiteNotFoundError()
    return website


async def require_cron_secret(
    settings: AppSettings,
    authorization: str | None = Header(default=None),
) -> None:
    """Shared-secret check for the scheduled trigger and the worker endpoint."""
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret is not configured",
        )
    if not verify_shared_secret(extract_bearer_token(authorization), settings.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


CronAuth = Depends(require_cron_secret)
