"""Notify the website owner by email (Resend) that a post is out."""

import asyncio
from pathlib import Path

import httpx
import resend
from jinja2 import Environment, FileSystemLoader

from autoblog.config import PublishConfig, get_settings
from autoblog.core.logging import get_logger
from autoblog.models import BlogPost, PostStatus, Website
from autoblog.publish.channels.base import PushResult

logger = get_logger(__name__)

template_dir = Path(__file__).parent.parent.parent / "emails" / "templates"
jinja_env = Environment(loader=FileSystemLoader(template_dir), autoescape=True)


def render_post_ready(post: BlogPost, website: Website) -> tuple[str, str]:
    """Subject and HTML body of the owner notification."""
    settings = get_settings()
    published = post.status == PostStatus.PUBLISHED
    html = jinja_env.get_template("post_ready.html").render(
        published=published,
        website_name=website.brand_name or website.name,
        post_title=post.title,
        word_count=post.word_count or 0,
        post_url=f"{settings.base_url}/dashboard/websites/{website.id}/posts/{post.id}",
    )
    return f'New post ready: "{post.title}"', html


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    settings = get_settings()
    if not settings.resend_api_key:
        return PushResult(success=False, error="Resend API key is not configured")

    resend.api_key = settings.resend_api_key
    subject, html = render_post_ready(post, website)

    # The Resend SDK is synchronous
    response = await asyncio.to_thread(
        resend.Emails.send,
        {
            "from": settings.email_from,
            "to": [website.owner_email],
            "subject": subject,
            "html": html,
        },
    )
    logger.bind(website_id=website.id, post_id=post.id).info("owner_email_sent")
    return PushResult(success=True, external_id=(response or {}).get("id"))
