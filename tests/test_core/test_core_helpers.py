"""Tests for the TTL cache, retry helper, security helpers and text utilities."""

from collections.abc import Hashable
from datetime import datetime, timedelta

import httpx
import pytest

from autoblog.core.cache import TTLCache
from autoblog.core.retry import RetryConfig, retry_with_backoff
from autoblog.core.security import (
    API_KEY_PREFIX,
    extract_bearer_token,
    generate_api_key,
    hash_token,
    verify_shared_secret,
)
from autoblog.pipeline.content import STEPS, step_progress
from autoblog.pipeline.text import first_heading, reading_time_minutes, slugify


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0)

    def __call__(self) -> datetime:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_within_ttl(self):
        cache = TTLCache(ttl_seconds=60, clock=FakeClock())
        cache.set("a", 1)
        assert cache.get("a") == 1

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("a", 1)

        clock.now += timedelta(seconds=61)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_evicts_oldest_when_full(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, max_entries=2, clock=clock)
        cache.set("old", 1)
        clock.now += timedelta(seconds=1)
        cache.set("newer", 2)
        cache.set("newest", 3)

        assert cache.get("old") is None
        assert cache.get("newer") == 2
        assert cache.get("newest") == 3

    def test_typed_instance(self):
        cache = TTLCache[str, int](ttl_seconds=60, clock=FakeClock())
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert TTLCache.__type_params__[0].__bound__ is Hashable

    def test_invalidate(self):
        cache = TTLCache(ttl_seconds=60)
        cache.set("a", 1)
        cache.invalidate("a")
        assert cache.get("a") is None


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self):
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise httpx.ConnectError("refused")
            return "ok"

        config = RetryConfig(max_attempts=3, backoff_base=0.001, jitter=False)
        assert await retry_with_backoff(flaky, config) == "ok"
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_raises_after_last_attempt(self):
        async def always_down():
            raise httpx.ConnectError("refused")

        config = RetryConfig(max_attempts=2, backoff_base=0.001)
        with pytest.raises(httpx.ConnectError):
            await retry_with_backoff(always_down, config)

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self):
        attempts = 0

        async def broken():
            nonlocal attempts
            attempts += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await retry_with_backoff(broken, RetryConfig(max_attempts=3))
        assert attempts == 1


class TestSecurity:
    """Tests for API key and shared-secret helpers."""

    def test_generated_keys_are_prefixed_and_unique(self):
        first, second = generate_api_key(), generate_api_key()
        assert first.startswith(API_KEY_PREFIX)
        assert first != second

    def test_hash_is_stable(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64

    def test_extract_bearer_token(self):
        assert extract_bearer_token("Bearer abc") == "abc"
        assert extract_bearer_token("bearer abc ") == "abc"
        assert extract_bearer_token("Basic abc") == ""
        assert extract_bearer_token(None) == ""

    def test_verify_shared_secret(self):
        assert verify_shared_secret("s3cret", "s3cret") is True
        assert verify_shared_secret("wrong", "s3cret") is False
        assert verify_shared_secret("", "") is False


class TestText:
    """Tests for slug and reading-time helpers."""

    def test_slugify(self):
        assert slugify("How to Invoice Clients?") == "how-to-invoice-clients"
        assert slugify("Café Crème Brûlée") == "cafe-creme-brulee"
        assert slugify("???") == "post"

    def test_slugify_cuts_on_word_boundary(self):
        slug = slugify("word " * 40, max_length=20)
        assert len(slug) <= 20
        assert not slug.endswith("-")

    def test_reading_time_has_floor(self):
        assert reading_time_minutes(0) == 1
        assert reading_time_minutes(1000) == 5

    def test_first_heading(self):
        assert first_heading("intro\n# Title Here\n## Sub") == "Title Here"
        assert first_heading("no heading") is None

    def test_step_progress(self):
        assert step_progress("research").percentage == 0
        assert step_progress(STEPS[-1]).percentage == round((len(STEPS) - 1) / len(STEPS) * 100)
