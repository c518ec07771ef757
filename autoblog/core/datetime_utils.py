"""Centralized datetime utilities for consistent timezone handling.

All functions return naive UTC datetimes for database compatibility
(SQLAlchemy models store naive UTC), except the per-website helpers which
work with aware datetimes in the website's own timezone.

Usage:
    from autoblog.core.datetime_utils import utc_now, get_cutoff

    now = utc_now()

    # Jobs stuck in PROCESSING for more than 20 minutes
    cutoff = get_cutoff(minutes=20)
    query.where(GenerationJob.started_at < cutoff)

    # Per-website publish window
    if is_in_publish_window(website.timezone, settings.publish_time, 60):
        enqueue(...)
"""

from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get current UTC time as naive datetime.

    Returns naive datetime for database compatibility.
    Replaces deprecated datetime.utcnow().
    """
    return datetime.now(UTC).replace(tzinfo=None)


def get_cutoff(minutes: int = 0, hours: int = 0, days: int = 0) -> datetime:
    """Get cutoff datetime for filtering queries.

    Args:
        minutes: Minutes to subtract from now
        hours: Hours to subtract from now
        days: Days to subtract from now

    Returns:
        Naive UTC datetime representing the cutoff point
    """
    delta = timedelta(minutes=minutes, hours=hours, days=days)
    return utc_now() - delta


def to_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC.

    Args:
        dt: Datetime to convert (can be aware or naive)

    Returns:
        Naive UTC datetime for database compatibility
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def website_local_time(timezone: str, now: datetime | None = None) -> datetime:
    """Get the current time in a website's timezone.

    Args:
        timezone: IANA timezone string (e.g., "America/New_York")
        now: Optional aware datetime to convert instead of the wall clock

    Returns:
        Aware datetime in the website's local timezone
    """
    try:
        tz = ZoneInfo(timezone)
    except (KeyError, ValueError):
        tz = ZoneInfo("UTC")

    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(tz)


def parse_time_of_day(value: str) -> time | None:
    """Parse an "HH:MM" string, returning None when it is malformed."""
    try:
        hours, minutes = value.split(":")
        return time(hour=int(hours), minute=int(minutes))
    except (ValueError, AttributeError):
        return None


def is_in_publish_window(
    timezone: str,
    publish_time: str | None,
    window_minutes: int = 60,
    now: datetime | None = None,
) -> bool:
    """Check whether a website's local clock is inside its publish window.

    The window opens at publish_time (local) and stays open for
    window_minutes. A website without a publish_time is always eligible.

    Args:
        timezone: Website's IANA timezone
        publish_time: Local time in "HH:MM" format, or None
        window_minutes: How long the window stays open
        now: Optional aware datetime, defaults to the wall clock

    Returns:
        True if the window is open
    """
    if not publish_time:
        return True

    target = parse_time_of_day(publish_time)
    if target is None:
        return True

    local_now = website_local_time(timezone, now)
    opens_at = local_now.replace(
        hour=target.hour,
        minute=target.minute,
        second=0,
        microsecond=0,
    )
    closes_at = opens_at + timedelta(minutes=window_minutes)

    # A window that crosses midnight may have opened yesterday
    if local_now < opens_at:
        opens_at -= timedelta(days=1)
        closes_at -= timedelta(days=1)

    return opens_at <= local_now < closes_at
