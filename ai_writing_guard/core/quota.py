"""
Per-caller quota governor.

Each caller is counted in a fixed-reset window bucket:
- Authenticated callers: ``user:<id>``, 24 hour window, ceiling by tier
- Anonymous callers: ``ip:<address>``, shorter window, coarser ceiling

Admission is a single locked check-and-increment per key, so concurrent
requests from one identity can never be undercounted. Expired buckets are
dropped, so memory is bounded by the callers seen in the current window.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


class Tier(Enum):
    """Quota classes for authenticated callers."""
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class Caller:
    """Identity resolved by the authentication layer."""
    ip_address: str
    user_id: Optional[int] = None
    subscription_tier: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def bucket_key(self) -> str:
        if self.is_authenticated:
            return f"user:{self.user_id}"
        return f"ip:{self.ip_address}"


class TierResolver(Protocol):
    def resolve_tier(self, caller: Caller) -> Tier: ...


@dataclass(frozen=True)
class StaticTierResolver:
    """Assigns the same tier to every caller."""
    tier: Tier = Tier.FREE

    def resolve_tier(self, caller: Caller) -> Tier:
        return self.tier


class SubscriptionTierResolver:
    """Reads the tier from the caller's subscription attribute.

    Missing or unknown subscriptions fall back to the free tier.
    """

    def resolve_tier(self, caller: Caller) -> Tier:
        if not caller.subscription_tier:
            return Tier.FREE
        try:
            return Tier(caller.subscription_tier.strip().lower())
        except ValueError:
            logger.warning(
                "Unknown subscription tier %r for %s, using free tier",
                caller.subscription_tier, caller.bucket_key
            )
            return Tier.FREE


@dataclass(frozen=True)
class QuotaPolicy:
    """Ceilings and windows enforced by the governor."""
    free_daily: int = 50
    premium_daily: int = 500
    anonymous_max_requests: int = 100
    anonymous_window_seconds: float = 15 * 60
    tier_window_seconds: float = DAY_SECONDS

    def __post_init__(self):
        for name in ("free_daily", "premium_daily", "anonymous_max_requests"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.anonymous_window_seconds <= 0 or self.tier_window_seconds <= 0:
            raise ValueError("window lengths must be > 0")

    def ceiling_for(self, tier: Tier) -> int:
        return self.premium_daily if tier == Tier.PREMIUM else self.free_daily


@dataclass
class QuotaBucket:
    """Request count for one key within its current window.

    The ceiling is fixed for the life of the window.
    """
    key: str
    ceiling: int
    window_seconds: float
    window_start: float
    count: int = 0

    def expired(self, now: float) -> bool:
        return now - self.window_start >= self.window_seconds

    def seconds_until_reset(self, now: float) -> int:
        return max(0, math.ceil(self.window_start + self.window_seconds - now))


class RateGovernor:
    """Admits or rejects generation requests per caller."""

    def __init__(
        self,
        policy: Optional[QuotaPolicy] = None,
        tier_resolver: Optional[TierResolver] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the governor.

        Args:
            policy: Ceilings and windows (defaults to QuotaPolicy())
            tier_resolver: Source of caller tiers (defaults to free for all)
            clock: Monotonic clock in seconds
        """
        self.policy = policy or QuotaPolicy()
        self.tier_resolver = tier_resolver or StaticTierResolver()
        self.clock = clock
        self._buckets: Dict[str, QuotaBucket] = {}
        self._lock = threading.Lock()
        # Expired buckets are swept at most once per shortest window
        self._sweep_interval = min(
            self.policy.anonymous_window_seconds, self.policy.tier_window_seconds
        )
        self._next_sweep = self.clock() + self._sweep_interval

    def admit(self, caller: Caller, endpoint: str) -> int:
        """Count one request for the caller or reject it.

        Rejected requests are not counted.

        Args:
            caller: Resolved caller identity
            endpoint: Name of the operation being requested

        Returns:
            Requests remaining in the caller's current window

        Raises:
            RateLimitExceeded: If the caller's ceiling is already reached
        """
        now = self.clock()
        with self._lock:
            bucket = self._bucket_for(caller, now)
            if bucket.count >= bucket.ceiling:
                retry_after = bucket.seconds_until_reset(now)
                self._reject(caller, bucket, endpoint, retry_after)
            bucket.count += 1
            return bucket.ceiling - bucket.count

    def remaining(self, caller: Caller) -> int:
        """Requests the caller may still make in the current window."""
        now = self.clock()
        with self._lock:
            bucket = self._bucket_for(caller, now)
            return bucket.ceiling - bucket.count

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _bucket_for(self, caller: Caller, now: float) -> QuotaBucket:
        """Current bucket for the caller, rebuilt once its window has elapsed.

        A rebuilt bucket resolves the tier again, so subscription changes
        take effect from the next window.
        """
        if now >= self._next_sweep:
            self._evict_expired(now)
        key = caller.bucket_key
        bucket = self._buckets.get(key)
        if bucket is None or bucket.expired(now):
            if caller.is_authenticated:
                ceiling = self.policy.ceiling_for(self.tier_resolver.resolve_tier(caller))
                window = self.policy.tier_window_seconds
            else:
                ceiling = self.policy.anonymous_max_requests
                window = self.policy.anonymous_window_seconds
            bucket = QuotaBucket(key=key, ceiling=ceiling, window_seconds=window, window_start=now)
            self._buckets[key] = bucket
        return bucket

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, bucket in self._buckets.items() if bucket.expired(now)]
        for key in expired:
            del self._buckets[key]
        self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug("Evicted %d expired quota buckets", len(expired))

    def _reject(self, caller: Caller, bucket: QuotaBucket, endpoint: str, retry_after: int) -> None:
        logger.warning(
            "Rate limit exceeded for %s (ip=%s) on %s; resets in %ss",
            bucket.key, caller.ip_address, endpoint, retry_after
        )
        if caller.is_authenticated:
            raise RateLimitExceeded(
                "AI request limit exceeded. Upgrade your plan for more requests.",
                key=bucket.key,
                endpoint=endpoint,
                retry_after=retry_after
            )
        raise RateLimitExceeded(
            "Too many requests from this IP, please try again later",
            key=bucket.key,
            endpoint=endpoint,
            retry_after=retry_after,
            code="RATE_LIMIT_EXCEEDED"
        )
