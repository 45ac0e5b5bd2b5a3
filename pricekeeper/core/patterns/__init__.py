"""Resilience patterns."""

from pricekeeper.core.patterns.retry import BackoffRetry, RetryConfig, RetryState

__all__ = ["BackoffRetry", "RetryConfig", "RetryState"]
