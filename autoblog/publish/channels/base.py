"""Shared types and HTTP plumbing for publish channels."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from autoblog.config import PublishConfig
from autoblog.core.retry import RetryConfig, retry_with_backoff
from autoblog.models import BlogPost, Website


@dataclass
class PushResult:
    """Outcome of pushing one post to one channel."""

    success: bool
    error: str | None = None
    external_id: str | None = None
    url: str | None = None


@dataclass
class ChannelResult:
    """A PushResult tagged with the channel that produced it."""

    channel: str
    success: bool
    error: str | None = None
    external_id: str | None = None


Channel = Callable[[httpx.AsyncClient, BlogPost, Website, PublishConfig], Awaitable[PushResult]]


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    config: PublishConfig,
    operation_name: str,
    **kwargs,
) -> httpx.Response:
    """One HTTP call with the channel timeout, retried on transport errors."""

    async def _call() -> httpx.Response:
        return await client.request(
            method, url, timeout=config.channel_timeout_seconds, **kwargs
        )

    return await retry_with_backoff(
        _call,
        RetryConfig(max_attempts=config.max_attempts, backoff_base=0.5, backoff_max=4.0),
        operation_name=operation_name,
    )


def error_from_response(response: httpx.Response, service: str) -> str:
    """Best-effort human-readable error from a failed API response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "detail", "error", "title"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict) and first.get("message"):
                return str(first["message"])
        if isinstance(errors, dict | str) and errors:
            return str(errors)
    return f"{service} returned {response.status_code}"
