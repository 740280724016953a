"""
Rate Limit Models
=================
Data models for token bucket decisions.
"""

from dataclasses import dataclass
from enum import Enum


class RateLimitResult(str, Enum):
    """Rate limit decision result."""
    ALLOWED = "allowed"
    THROTTLED = "throttled"


@dataclass
class RateLimitInfo:
    """Token bucket level with quota information."""
    allowed: bool
    remaining: float  # Whole or partial tokens in the bucket
    limit: int  # Bucket capacity (burst)
    rate: float  # Tokens added per second
    retry_after: float = 0.0  # Seconds until a token is available

    @property
    def result(self) -> RateLimitResult:
        return RateLimitResult.ALLOWED if self.allowed else RateLimitResult.THROTTLED
