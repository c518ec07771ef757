"""Post a link to the new article on X/Twitter (API v2, OAuth 2.0 user token)."""

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import build_tweet_text, post_url

TWITTER_API_URL = "https://api.twitter.com/2/tweets"


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    text = build_tweet_text(post, post_url(post, website), config.tweet_hashtags)

    response = await send_request(
        client,
        "POST",
        TWITTER_API_URL,
        config,
        "twitter_post",
        json={"text": text},
        headers={"Authorization": f"Bearer {website.twitter_access_token}"},
    )
    if response.status_code not in (200, 201):
        return PushResult(success=False, error=error_from_response(response, "Twitter"))

    tweet_id = response.json().get("data", {}).get("id")
    return PushResult(
        success=True,
        external_id=tweet_id,
        url=f"https://x.com/i/web/status/{tweet_id}" if tweet_id else None,
    )
