"""Share the new article on LinkedIn (UGC posts API)."""

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import post_url

LINKEDIN_API_URL = "https://api.linkedin.com/v2/ugcPosts"


def build_share(post: BlogPost, website: Website, url: str) -> dict:
    captions = post.social_captions or {}
    commentary = captions.get("linkedin") or post.excerpt or post.title

    return {
        "author": website.linkedin_author_urn,
        "lifecycleState": "PUBLISHED",
        "specificContent": {
            "com.linkedin.ugc.ShareContent": {
                "shareCommentary": {"text": commentary},
                "shareMediaCategory": "ARTICLE",
                "media": [
                    {
                        "status": "READY",
                        "originalUrl": url,
                        "title": {"text": post.title},
                        "description": {"text": post.meta_description or post.excerpt or ""},
                    }
                ],
            }
        },
        "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
    }


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    if not website.linkedin_author_urn:
        return PushResult(success=False, error="LinkedIn author URN is not configured")

    response = await send_request(
        client,
        "POST",
        LINKEDIN_API_URL,
        config,
        "linkedin_share",
        json=build_share(post, website, post_url(post, website)),
        headers={
            "Authorization": f"Bearer {website.linkedin_access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        },
    )
    if response.status_code not in (200, 201):
        return PushResult(success=False, error=error_from_response(response, "LinkedIn"))
    return PushResult(success=True, external_id=response.headers.get("x-restli-id"))
