"""Generic outbound webhook (Zapier, Make, custom CMS)."""

import json

import httpx

from autoblog.config import PublishConfig
from autoblog.core.datetime_utils import utc_now
from autoblog.core.security import sign_payload
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, send_request
from autoblog.publish.formatting import markdown_to_html

EVENT_POST_PUBLISHED = "post.published"


def build_payload(post: BlogPost, website: Website) -> dict:
    published_at = post.published_at or utc_now()
    return {
        "event": EVENT_POST_PUBLISHED,
        "timestamp": utc_now().isoformat() + "Z",
        "post": {
            "id": post.id,
            "title": post.title,
            "slug": post.slug,
            "content": post.content,
            "contentHtml": markdown_to_html(post.content),
            "excerpt": post.excerpt,
            "metaTitle": post.meta_title,
            "metaDescription": post.meta_description,
            "focusKeyword": post.focus_keyword,
            "featuredImage": post.featured_image,
            "tags": post.tags or [],
            "category": post.category,
            "status": "PUBLISHED",
            "publishedAt": published_at.isoformat() + "Z",
            "wordCount": post.word_count,
            "readingTime": post.reading_time,
            "websiteId": website.id,
            "websiteDomain": website.domain,
            "brandName": website.brand_name,
        },
    }


def build_headers(post: BlogPost, body: bytes, secret: str | None, user_agent: str) -> dict:
    headers = {
        "Content-Type": "application/json",
        "User-Agent": user_agent,
        "X-Autoblog-Event": EVENT_POST_PUBLISHED,
        "X-Autoblog-Post-Id": post.id,
    }
    if secret:
        headers["X-Autoblog-Signature"] = sign_payload(secret, body)
    return headers


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    # Sign the exact bytes that go on the wire
    body = json.dumps(build_payload(post, website)).encode()

    response = await send_request(
        client,
        "POST",
        website.webhook_url,
        config,
        "webhook_delivery",
        content=body,
        headers=build_headers(post, body, website.webhook_secret, config.user_agent),
    )
    if response.is_success:
        return PushResult(success=True)
    return PushResult(success=False, error=f"Webhook returned {response.status_code}")
