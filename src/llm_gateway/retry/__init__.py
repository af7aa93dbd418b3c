"""
Retry engine with exponential backoff.

Main Components:
    - RetryPolicy: Attempt budget, backoff bounds, jitter, predicate, callback
    - RetryEngine / run_with_retry: Execute an async operation under a policy
    - compute_backoff: Backoff formula (exposed for testing and callers)
    - FailedAttempt: Annotated record passed to the failure callback

Usage:
    >>> from llm_gateway.retry import RetryPolicy, run_with_retry
    >>> policy = RetryPolicy(max_attempts=2, min_timeout=0.01, max_timeout=0.1)
    >>> result = await run_with_retry(operation, policy)
"""

from llm_gateway.retry.engine import RetryEngine, RetryPolicy, compute_backoff, run_with_retry
from llm_gateway.retry.exceptions import InvalidRetryPolicy
from llm_gateway.retry.metadata import FailedAttempt

__all__ = [
    "RetryEngine",
    "RetryPolicy",
    "compute_backoff",
    "run_with_retry",
    "FailedAttempt",
    "InvalidRetryPolicy",
]
