"""
Token bucket rate limiter for pkgsweep.

One limiter is built per batch and shared by every worker, so the aggregate
rate of real GitHub calls stays under the API limits no matter how many
workers run. GitHub allows 60 requests per hour for unauthenticated clients
and 5000 per hour for authenticated ones
(https://docs.github.com/en/rest/overview/rate-limits-for-the-rest-api).
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Dict, Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitTier:
    """Bucket configuration: `capacity` tokens, one refilled every `interval` seconds."""
    capacity: int
    interval: float

    def to_dict(self) -> Dict[str, Any]:
        return {'capacity': self.capacity, 'interval': self.interval}


# 5000 requests/hour
AUTHENTICATED = RateLimitTier(capacity=10, interval=0.72)

# 60 requests/hour
UNAUTHENTICATED = RateLimitTier(capacity=1, interval=60.0)


class TokenBucket:
    """
    Thread-safe token bucket.

    The bucket starts full. Callers that find it empty reserve the next
    token and sleep outside the lock until it is due, so concurrent callers
    are served in arrival order and never hold the lock while waiting.

    Example:
        bucket = TokenBucket(capacity=10, interval=0.72)
        bucket.acquire()  # blocks when no token is available
    """

    def __init__(
        self,
        capacity: int,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.capacity = capacity
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = float(capacity)
        self._last = clock()

    @classmethod
    def from_tier(cls, tier: RateLimitTier, **kwargs) -> 'TokenBucket':
        return cls(tier.capacity, tier.interval, **kwargs)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last
        self._last = now
        self._tokens = min(float(self.capacity), self._tokens + elapsed / self.interval)

    def reserve(self) -> float:
        """
        Take one token, possibly borrowed from the future.

        Returns:
            Seconds the caller must wait before the token is valid
        """
        with self._lock:
            self._refill()
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens * self.interval

    def acquire(self) -> float:
        """
        Block until a token is available.

        Returns:
            Seconds spent waiting
        """
        wait = self.reserve()
        if wait > 0:
            logger.debug(f"Rate limiter empty, waiting {wait:.2f}s")
            self._sleep(wait)
        return wait

    def available(self) -> float:
        """Tokens currently in the bucket (negative when callers are queued)."""
        with self._lock:
            self._refill()
            return self._tokens


def tier_for(authenticated: bool, config: Optional[Dict[str, Any]] = None) -> RateLimitTier:
    """
    Pick the rate limit tier for a batch.

    Args:
        authenticated: Whether GitHub credentials were supplied
        config: Optional `rate_limit` config section overriding the defaults
    """
    default = AUTHENTICATED if authenticated else UNAUTHENTICATED
    if not config:
        return default

    section = config.get('authenticated' if authenticated else 'unauthenticated') or {}
    return RateLimitTier(
        capacity=int(section.get('capacity', default.capacity)),
        interval=float(section.get('interval_seconds', default.interval)),
    )


def limiter_for(authenticated: bool, config: Optional[Dict[str, Any]] = None) -> TokenBucket:
    """Build the shared limiter for a batch."""
    tier = tier_for(authenticated, config)
    logger.debug(
        f"Using {'authenticated' if authenticated else 'unauthenticated'} rate limit: "
        f"{tier.capacity} tokens, one every {tier.interval}s"
    )
    return TokenBucket.from_tier(tier)
