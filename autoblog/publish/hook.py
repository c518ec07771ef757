"""
Publish hook: fan a freshly published post out to every configured channel.

Channels are independent and best-effort. They run concurrently, each one
isolated so that a failure (returned or raised) is logged and reported
without affecting the others, and the hook only returns once all of them
have settled.
"""

import asyncio

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.config import PublishConfig, get_config, get_settings
from autoblog.core.logging import get_logger
from autoblog.models import BlogPost, Website
from autoblog.publish.channels import (
    Channel,
    ChannelResult,
    email,
    ghost,
    indexnow,
    linkedin,
    shopify,
    twitter,
    webflow,
    webhook,
)

logger = get_logger(__name__)

TRIGGER_AUTO = "auto"
TRIGGER_MANUAL = "manual"
TRIGGER_SCHEDULED = "scheduled"


def select_channels(website: Website, triggered_by: str) -> list[tuple[str, Channel]]:
    """Channels configured for `website`. CMS pushes only happen for auto-published posts."""
    auto = triggered_by == TRIGGER_AUTO
    channels: list[tuple[str, Channel]] = []

    if website.indexnow_key:
        channels.append(("indexnow", indexnow.push))
    if website.twitter_access_token:
        channels.append(("twitter", twitter.push))
    if website.linkedin_access_token:
        channels.append(("linkedin", linkedin.push))
    if website.webhook_url:
        channels.append(("webhook", webhook.push))
    if website.shopify_config and auto:
        channels.append(("shopify", shopify.push))
    if website.ghost_config and auto:
        channels.append(("ghost", ghost.push))
    if website.cms_type == "WEBFLOW" and website.webflow_config and auto:
        channels.append(("webflow", webflow.push))
    if website.owner_email and get_settings().resend_api_key:
        channels.append(("email", email.push))

    return channels


async def _run_channel(
    name: str,
    channel: Channel,
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> ChannelResult:
    log = logger.bind(channel=name, post_id=post.id, website_id=website.id)
    try:
        result = await channel(client, post, website, config)
    except Exception as e:
        log.bind(error=str(e) or type(e).__name__).exception("publish_channel_error")
        return ChannelResult(channel=name, success=False, error=str(e) or type(e).__name__)

    if result.success:
        log.bind(external_id=result.external_id).info("publish_channel_succeeded")
    else:
        log.bind(error=result.error).warning("publish_channel_failed")
    return ChannelResult(
        channel=name,
        success=result.success,
        error=result.error,
        external_id=result.external_id,
    )


async def run_publish_hook(
    db: AsyncSession,
    post_id: str,
    website_id: str,
    triggered_by: str = TRIGGER_MANUAL,
    client: httpx.AsyncClient | None = None,
) -> list[ChannelResult]:
    """
    Push a published post to every configured channel.

    Args:
        db: Session used to load the post and record social publication
        post_id: Post to publish
        website_id: Website the post belongs to
        triggered_by: "auto", "manual" or "scheduled"
        client: Optional shared HTTP client (one is created otherwise)

    Returns:
        One ChannelResult per channel that ran; empty when the post or the
        website no longer exists
    """
    post = await db.get(BlogPost, post_id)
    website = await db.get(Website, website_id)
    if post is None or website is None:
        logger.bind(post_id=post_id, website_id=website_id).warning("publish_hook_target_missing")
        return []

    channels = select_channels(website, triggered_by)
    if not channels:
        return []

    config = get_config().publish
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(headers={"User-Agent": config.user_agent})

    try:
        results = await asyncio.gather(
            *(_run_channel(name, fn, client, post, website, config) for name, fn in channels)
        )
    finally:
        if owns_client:
            await client.aclose()

    if any(r.channel == "twitter" and r.success for r in results):
        post.social_published = True
        await db.flush()

    logger.bind(
        post_id=post_id,
        triggered_by=triggered_by,
        succeeded=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
    ).info("publish_hook_completed")
    return list(results)
