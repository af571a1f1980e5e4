"""Safety boundary for kubegate operations.

Exposes:
    GuardEngine  -- read-only mode and namespace/kind allowlists.
    RateLimiter  -- per-operation token buckets.
    redact       -- fixed-marker secret redaction.
"""

from kubegate.guard.engine import GuardEngine
from kubegate.guard.ratelimit import RateLimiter, TokenBucket
from kubegate.guard.redaction import REDACTED, may_disclose, redact, shape_secret_data

__all__ = [
    "REDACTED",
    "GuardEngine",
    "RateLimiter",
    "TokenBucket",
    "may_disclose",
    "redact",
    "shape_secret_data",
]
