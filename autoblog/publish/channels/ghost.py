"""Publish to a Ghost site through the Admin API."""

import base64
import hashlib
import hmac
import json
import time

import httpx

from autoblog.config import PublishConfig
from autoblog.models import BlogPost, Website
from autoblog.publish.channels.base import PushResult, error_from_response, send_request
from autoblog.publish.formatting import markdown_to_html

GHOST_API_VERSION = "v5.0"
# Ghost rejects tokens valid for more than five minutes
TOKEN_TTL_SECONDS = 300


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def build_admin_token(admin_api_key: str, now: int | None = None) -> str:
    """Short-lived HS256 token from an Admin API key of the form `<id>:<hex secret>`."""
    key_id, _, secret = admin_api_key.partition(":")
    if not key_id or not secret:
        raise ValueError("Ghost admin API key must look like <id>:<secret>")

    issued_at = now if now is not None else int(time.time())
    header = {"alg": "HS256", "typ": "JWT", "kid": key_id}
    claims = {"iat": issued_at, "exp": issued_at + TOKEN_TTL_SECONDS, "aud": "/admin/"}

    signing_input = ".".join(
        _b64url(json.dumps(part, separators=(",", ":")).encode()) for part in (header, claims)
    )
    signature = hmac.new(bytes.fromhex(secret), signing_input.encode(), hashlib.sha256).digest()
    return f"{signing_input}.{_b64url(signature)}"


def build_ghost_post(post: BlogPost) -> dict:
    return {
        "title": post.title,
        "slug": post.slug,
        "html": markdown_to_html(post.content),
        "custom_excerpt": (post.excerpt or "")[:300] or None,
        "status": "published",
        "tags": [{"name": tag} for tag in post.tags or []],
        "feature_image": post.featured_image,
        "meta_title": post.meta_title,
        "meta_description": post.meta_description,
    }


async def push(
    client: httpx.AsyncClient,
    post: BlogPost,
    website: Website,
    config: PublishConfig,
) -> PushResult:
    ghost = website.ghost_config or {}
    api_url = (ghost.get("apiUrl") or "").rstrip("/")
    admin_api_key = ghost.get("adminApiKey") or ""
    if not api_url or not admin_api_key:
        return PushResult(success=False, error="Ghost config is incomplete")

    response = await send_request(
        client,
        "POST",
        f"{api_url}/ghost/api/admin/posts/?source=html",
        config,
        "ghost_post",
        json={"posts": [build_ghost_post(post)]},
        headers={
            "Authorization": f"Ghost {build_admin_token(admin_api_key)}",
            "Accept-Version": GHOST_API_VERSION,
        },
    )
    if response.status_code not in (200, 201):
        return PushResult(success=False, error=error_from_response(response, "Ghost"))

    created = (response.json().get("posts") or [{}])[0]
    return PushResult(success=True, external_id=created.get("id"), url=created.get("url"))
