"""Create a blog article in a Shopify store (Admin REST API)."""

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import markdown_to_html

SHOPIFY_API_VERSION = "2024-10"


def build_article(post: BlogPost) -> dict:
    article = {
        "title": post.title,
        "handle": post.slug,
        "body_html": markdown_to_html(post.content),
        "summary_html": post.excerpt or "",
        "tags": ", ".join(post.tags or []),
        "published": True,
        "metafields": [
            {
                "key": "title_tag",
                "namespace": "global",
                "type": "single_line_text_field",
                "value": post.meta_title or post.title,
            },
            {
                "key": "description_tag",
                "namespace": "global",
                "type": "single_line_text_field",
                "value": post.meta_description or "",
            },
        ],
    }
    if post.featured_image:
        article["image"] = {"src": post.featured_image, "alt": post.featured_image_alt or ""}
    return article


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    shop = website.shopify_config or {}
    store_domain = shop.get("storeDomain")
    access_token = shop.get("accessToken")
    blog_id = shop.get("blogId")
    if not (store_domain and access_token and blog_id):
        return PushResult(success=False, error="Shopify config is incomplete")

    response = await send_request(
        client,
        "POST",
        f"https://{store_domain}/admin/api/{SHOPIFY_API_VERSION}/blogs/{blog_id}/articles.json",
        config,
        "shopify_article",
        json={"article": build_article(post)},
        headers={"X-Shopify-Access-Token": access_token},
    )
    if response.status_code not in (200, 201):
        return PushResult(success=False, error=error_from_response(response, "Shopify"))

    article = response.json().get("article", {})
    article_id = article.get("id")
    return PushResult(
        success=True,
        external_id=str(article_id) if article_id else None,
        url=f"https://{store_domain}/blogs/{shop.get('blogHandle', 'news')}/{post.slug}",
    )
