"""Counting completed jobs against the monthly plan limit."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autoblog.models import QuotaUsage, Subscription


async def record_quota_usage(db: AsyncSession, job_id: str, organization_id: str) -> bool:
    """
    Count `job_id` once against its organization's monthly usage.

    The usage row (unique on job_id) and the counter increment share the
    caller's transaction, so a job can never be counted twice. Returns False
    when the job was already counted.
    """
    existing = await db.execute(select(QuotaUsage.id).where(QuotaUsage.job_id == job_id))
    if existing.scalar_one_or_none() is not None:
        return False

    db.add(QuotaUsage(job_id=job_id, organization_id=organization_id))
    await db.execute(
        update(Subscription)
        .where(Subscription.organization_id == organization_id)
        .values(posts_generated_this_month=Subscription.posts_generated_this_month + 1)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return True
