"""
Rate Limiting
=============
Token bucket limiter shared by all outbound submissions.
"""

from .models import RateLimitResult, RateLimitInfo
from .token_bucket import TokenBucketLimiter

__all__ = [
    "RateLimitResult",
    "RateLimitInfo",
    "TokenBucketLimiter",
]
