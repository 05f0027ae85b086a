"""
Per-user throttling for bot searches
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class TokenBucket:
    """Holds up to `capacity` tokens, refilled continuously at `refill_rate` per second"""
    capacity: float
    refill_rate: float
    tokens: float = field(init=False)
    updated_at: float = field(init=False, default_factory=time.monotonic)

    def __post_init__(self):
        self.tokens = self.capacity

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.updated_at) * self.refill_rate)
        self.updated_at = now

    def consume(self, tokens: int = 1) -> bool:
        self._refill()
        if self.tokens < tokens:
            return False
        self.tokens -= tokens
        return True

    def wait_time(self, tokens: int = 1) -> Optional[float]:
        """Seconds until `tokens` are available, None when they already are or never will be"""
        self._refill()
        if self.tokens >= tokens or self.refill_rate <= 0:
            return None
        return (tokens - self.tokens) / self.refill_rate


class RateLimiter:
    """One bucket per Slack user: `burst` searches at once, `requests_per_minute` sustained"""

    def __init__(self, requests_per_minute: int = 30, burst: int = 5):
        self.requests_per_minute = requests_per_minute
        self.burst = burst
        self._buckets: Dict[str, TokenBucket] = {}

    def _bucket(self, user_id: str) -> TokenBucket:
        bucket = self._buckets.get(user_id)
        if bucket is None:
            bucket = TokenBucket(capacity=self.burst, refill_rate=self.requests_per_minute / 60.0)
            self._buckets[user_id] = bucket
        return bucket

    def check_rate_limit(self, user_id: str) -> bool:
        """Take one search from the user's budget; False when it is used up"""
        return self._bucket(user_id).consume()

    def retry_after(self, user_id: str) -> Optional[float]:
        return self._bucket(user_id).wait_time()

    def reset(self, user_id: str) -> None:
        self._buckets.pop(user_id, None)
