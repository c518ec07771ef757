"""IndexNow ping so search engines crawl new posts quickly."""

from urllib.parse import urlparse

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import post_url


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    url = post_url(post, website)
    host = urlparse(url).netloc
    payload = {
        "host": host,
        "key": website.indexnow_key,
        "keyLocation": f"https://{host}/{website.indexnow_key}.txt",
        "urlList": [url],
    }

    response = await send_request(
        client, "POST", config.indexnow_endpoint, config, "indexnow_submit", json=payload
    )
    # 200 and 202 both mean the submission was accepted
    if response.status_code in (200, 202):
        return PushResult(success=True, url=url)
    return PushResult(success=False, error=error_from_response(response, "IndexNow"))
