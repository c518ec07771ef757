from autoblog.publish.channels import (
    email,
    ghost,
    indexnow,
    linkedin,
    shopify,
    twitter,
    webflow,
    webhook,
)
from autoblog.publish.channels.base import Channel, ChannelResult, PushResult

__all__ = [
    "Channel",
    "ChannelResult",
    "PushResult",
    "email",
    "ghost",
    "indexnow",
    "linkedin",
    "shopify",
    "twitter",
    "webflow",
    "webhook",
]
