"""
Service layer infrastructure - resilience patterns for external API calls.

Provides:
- ResponseCache: In-memory cache with a fixed TTL
- FetchOrchestrator: Ordered endpoint fallback with retry and backoff
- RateLimiter: Sliding window limiter for inbound requests
"""

from gateway.services.errors import (
    ServiceError,
    EndpointFailure,
    OrchestratorError,
)
from gateway.services.cache import CacheEntry, CacheStats, ResponseCache
from gateway.services.orchestrator import (
    AttemptOutcome,
    FetchOrchestrator,
    OutcomeKind,
    RetryPolicy,
    backoff_delay,
    classify_status,
)
from gateway.services.rate_limiter import RateLimitDecision, RateLimiter

__all__ = [
    # Errors
    "ServiceError",
    "EndpointFailure",
    "OrchestratorError",
    # Cache
    "CacheEntry",
    "CacheStats",
    "ResponseCache",
    # Orchestrator
    "AttemptOutcome",
    "FetchOrchestrator",
    "OutcomeKind",
    "RetryPolicy",
    "backoff_delay",
    "classify_status",
    # Rate limiting
    "RateLimitDecision",
    "RateLimiter",
]
