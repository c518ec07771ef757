"""Rendering posts for external channels."""

import markdown as md

from autoblog.models import BlogPost, Website

TWEET_LIMIT = 280
# t.co wraps every link to a fixed length
TWEET_URL_LENGTH = 23


def markdown_to_html(text: str) -> str:
    return md.markdown(text or "", extensions=["tables", "fenced_code"])


def post_url(post: BlogPost, website: Website) -> str:
    return f"{website.public_base_url}/{post.slug}"


def _hashtag(tag: str) -> str:
    return "#" + "".join(part.capitalize() for part in tag.replace("-", " ").split())


def build_tweet_text(post: BlogPost, url: str, max_hashtags: int = 2) -> str:
    """
    Tweet for a freshly published post.

    Uses the generated Twitter caption when there is one, otherwise the
    title plus a few hashtags from the post tags. The text is trimmed so
    that text + space + link fits in a single tweet.
    """
    captions = post.social_captions or {}
    text = (captions.get("twitter") or "").strip()
    if not text:
        hashtags = " ".join(_hashtag(t) for t in (post.tags or [])[:max_hashtags] if t.strip())
        text = f"{post.title}\n\n{hashtags}".strip()

    budget = TWEET_LIMIT - TWEET_URL_LENGTH - 1
    if len(text) > budget:
        text = text[: budget - 1].rstrip() + "…"
    return f"{text} {url}"
