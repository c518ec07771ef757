"""Monthly quota gate consulted before a job is enqueued."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.generation import store


@dataclass
class AdmissionResult:
    allowed: bool
    remaining: int | None
    reason: str | None = None


async def check_generation_limit(db: AsyncSession, website_id: str) -> AdmissionResult:
    """
    Decide whether the website's organization may generate another post.

    `remaining` subtracts jobs already queued or running for the site, so a
    burst of enqueues cannot overshoot the plan. The check is advisory: two
    concurrent callers can both be admitted for the last slot, and the
    monthly counter is only incremented when a job completes.
    """
    website = await store.get_website(db, website_id)
    if website is None:
        return AdmissionResult(allowed=False, remaining=0, reason="Website not found")

    subscription = website.organization.subscription
    if subscription is None:
        return AdmissionResult(allowed=True, remaining=None)

    used = subscription.posts_generated_this_month
    limit = subscription.max_posts_per_month
    if used >= limit:
        return AdmissionResult(
            allowed=False,
            remaining=0,
            reason=(
                f"You've used all {limit} posts for this month on the "
                f"{subscription.plan} plan. Upgrade to generate more."
            ),
        )

    active = await store.count_active_jobs(db, website_id)
    return AdmissionResult(allowed=True, remaining=max(limit - used - active, 0))
