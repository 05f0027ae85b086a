"""Tests for the cache, rate limiter and time helpers."""

from datetime import datetime

import pytz

from slackrat.tools.utils.time import (
    days_window,
    format_timestamp,
    get_timezone,
    localize,
    to_slack_ts,
    ts_to_datetime,
)
from slackrat.utils.cache import SearchCache
from slackrat.utils.rate_limiter import RateLimiter, TokenBucket


# ---------------------------------------------------------------------------
# SearchCache
# ---------------------------------------------------------------------------

def test_cache_set_get_delete():
    cache = SearchCache(ttl_seconds=60)
    cache.set("key", {"value": 1})

    assert cache.get("key") == {"value": 1}
    assert len(cache) == 1

    cache.delete("key")
    assert cache.get("key") is None
    cache.delete("key")


def test_cache_expires_entries():
    cache = SearchCache(ttl_seconds=60)
    cache.set("fresh", "value")
    cache.set("stale", "value", ttl=-1)

    assert cache.get("stale") is None
    assert cache.get("fresh") == "value"
    assert len(cache) == 1


def test_cache_counts_hits_and_misses():
    cache = SearchCache()
    cache.set("key", "value")
    cache.get("key")
    cache.get("other")

    assert (cache.hits, cache.misses) == (1, 1)

    cache.clear()
    assert (len(cache), cache.hits, cache.misses) == (0, 0, 0)


def test_cache_drops_oldest_when_full():
    cache = SearchCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 10
    assert cache.get("c") == 3


def test_cache_purge_prefers_expired_entries():
    cache = SearchCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2, ttl=-1)
    cache.set("c", 3)

    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert cache.purge_expired() == 0


def test_make_key_is_stable_and_distinct():
    key = SearchCache.make_key("search", "C0GENERAL1", "deploy", {"limit": 100})

    assert key == SearchCache.make_key("search", "C0GENERAL1", "deploy", {"limit": 100})
    assert key.startswith("search:")
    assert key != SearchCache.make_key("search", "C0GENERAL1", "deploy", {"limit": 50})
    assert key != SearchCache.make_key("search", "C0RANDOM1", "deploy", {"limit": 100})


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

def test_token_bucket_capacity():
    bucket = TokenBucket(capacity=2, refill_rate=0)

    assert bucket.consume()
    assert bucket.consume()
    assert not bucket.consume()


def test_rate_limiter_is_per_key():
    limiter = RateLimiter(requests_per_minute=1, burst=1)

    assert limiter.check_rate_limit("U01ALICE")
    assert not limiter.check_rate_limit("U01ALICE")
    assert limiter.check_rate_limit("U01BOB")


def test_retry_after():
    limiter = RateLimiter(requests_per_minute=1, burst=1)
    assert limiter.retry_after("U01ALICE") is None

    limiter.check_rate_limit("U01ALICE")
    wait = limiter.retry_after("U01ALICE")
    assert 0 < wait <= 60

    limiter.reset("U01ALICE")
    assert limiter.check_rate_limit("U01ALICE")


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def test_ts_to_datetime():
    assert ts_to_datetime("1700000000.000100").replace(microsecond=0) == datetime(
        2023, 11, 14, 22, 13, 20, tzinfo=pytz.UTC
    )
    assert ts_to_datetime("not-a-ts") == datetime(1970, 1, 1, tzinfo=pytz.UTC)
    assert ts_to_datetime(None) == datetime(1970, 1, 1, tzinfo=pytz.UTC)


def test_to_slack_ts():
    assert to_slack_ts(datetime(2023, 11, 14, 22, 13, 20, tzinfo=pytz.UTC)) == "1700000000"
    # Naive datetimes are taken as UTC
    assert to_slack_ts(datetime(2023, 11, 14, 22, 13, 20)) == "1700000000"


def test_get_timezone_falls_back_to_utc():
    assert get_timezone(None) is pytz.UTC
    assert get_timezone("Mars/Olympus") is pytz.UTC
    assert get_timezone("Europe/Lisbon").zone == "Europe/Lisbon"


def test_format_timestamp():
    assert format_timestamp("1700000000.000100") == "14/11/2023 22:13:20"
    assert format_timestamp("1700000000", "America/Sao_Paulo") == "14/11/2023 19:13:20"
    assert format_timestamp(datetime(2023, 11, 14, 22, 13, 20)) == "14/11/2023 22:13:20"


def test_localize():
    value = localize(datetime(2023, 11, 14, 22, 13, 20, tzinfo=pytz.UTC), "Asia/Tokyo")
    assert (value.day, value.hour) == (15, 7)


def test_days_window():
    now = datetime(2023, 11, 14, 12, 0, tzinfo=pytz.UTC)

    start, end = days_window(7, now=now)

    assert end == now
    assert start == datetime(2023, 11, 7, 12, 0, tzinfo=pytz.UTC)
