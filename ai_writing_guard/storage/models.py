"""
Data models for the usage ledger.

Usage records are append-only; summaries are derived on read.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass(frozen=True)
class UsageRecord:
    """One completed generation call, owned by the calling user.

    Records are never modified after insertion.
    """
    user_id: int
    feature_type: str
    tokens_used: int
    timestamp: datetime
    post_id: Optional[int] = None
    model: Optional[str] = None

    def __post_init__(self):
        if not self.feature_type or not self.feature_type.strip():
            raise ValueError("feature_type is required and cannot be empty")
        if self.tokens_used < 0:
            raise ValueError("tokens_used cannot be negative")


@dataclass(frozen=True)
class FeatureUsage:
    feature_type: str
    request_count: int
    total_tokens: int
    avg_tokens_per_request: float


@dataclass(frozen=True)
class DailyUsage:
    date: date
    requests: int
    tokens: int


@dataclass(frozen=True)
class UsageSummary:
    """Aggregate usage for one user over a trailing window."""
    user_id: int
    window_days: int
    total_requests: int
    total_tokens: int
    by_feature: List[FeatureUsage] = field(default_factory=list)
    daily: List[DailyUsage] = field(default_factory=list)
