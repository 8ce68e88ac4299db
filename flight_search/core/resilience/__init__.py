"""
Resilience Module

Timeout, retry and circuit breaker layers for calls to the flight provider,
composed per operation key:

    retry( circuit_breaker( timeout( work ) ) )

COMPONENTS:
===========
- TimeoutGuard: bounds each attempt
- RetryScheduler: capped exponential backoff (tenacity)
- CircuitBreaker: consecutive-failure breaker with half-open probing
- compose_policy / ComposedPolicy: layer composition
- ResilienceExecutor: policy cache, breaker registry, failure classification
"""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, StateChange
from .composer import ComposedPolicy, ResilienceOptions, compose_policy
from .executor import ResilienceExecutor, classify_failure
from .retry import RetryAttempt, RetryConfig, RetryScheduler
from .timeout import TimeoutGuard

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "StateChange",
    "ComposedPolicy",
    "ResilienceOptions",
    "compose_policy",
    "ResilienceExecutor",
    "classify_failure",
    "RetryAttempt",
    "RetryConfig",
    "RetryScheduler",
    "TimeoutGuard",
]
