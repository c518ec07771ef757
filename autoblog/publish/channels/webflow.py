"""Create a live item in a Webflow CMS collection (Data API v2)."""

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import markdown_to_html

WEBFLOW_API_URL = "https://api.webflow.com/v2"


def build_item(post: BlogPost) -> dict:
    return {
        "isArchived": False,
        "isDraft": False,
        "fieldData": {
            "name": post.title,
            "slug": post.slug,
            "post-body": markdown_to_html(post.content),
            "post-summary": post.excerpt or "",
            "meta-title": post.meta_title or post.title,
            "meta-description": post.meta_description or "",
        },
    }


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    webflow = website.webflow_config or {}
    access_token = webflow.get("accessToken")
    collection_id = webflow.get("collectionId")
    if not access_token or not collection_id:
        return PushResult(success=False, error="Webflow config is incomplete")

    response = await send_request(
        client,
        "POST",
        f"{WEBFLOW_API_URL}/collections/{collection_id}/items",
        config,
        "webflow_item",
        json=build_item(post),
        headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        },
    )
    if not response.is_success:
        return PushResult(success=False, error=error_from_response(response, "Webflow"))
    return PushResult(success=True, external_id=response.json().get("id"))
