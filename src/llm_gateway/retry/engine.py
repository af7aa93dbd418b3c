"""
Retry engine with exponential backoff and jitter.

Executes an async operation with a bounded number of retries:

    attempts  = policy.max_attempts + 1
    backoff_k = min(min_timeout * 2**k, max_timeout) * (1 + jitter)

where k is the 0-indexed retry and jitter is drawn from [0, 0.1) per retry
when `randomize` is on. Only the calling coroutine sleeps between attempts.

Usage:
    policy = RetryPolicy(max_attempts=2, min_timeout=0.5, max_timeout=5.0)
    result = await run_with_retry(lambda: client.fetch(), policy)
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from llm_gateway.config import Settings
from llm_gateway.exceptions import NonRetriableError
from llm_gateway.monitoring.metrics import retries_total
from llm_gateway.retry.exceptions import InvalidRetryPolicy
from llm_gateway.retry.metadata import FailedAttempt

logger = structlog.get_logger(__name__)

T = TypeVar("T")

JITTER_RANGE = 0.1


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for a single call.
    
    Attributes:
        max_attempts: Retries allowed after the first attempt (0 = one attempt)
        min_timeout: Backoff before the first retry, in seconds
        max_timeout: Upper bound for the un-jittered backoff, in seconds
        randomize: Scale each backoff by (1 + jitter), jitter in [0, 0.1)
        retry_if: Optional predicate; returning False stops retrying immediately
        on_failed_attempt: Optional callback invoked before each retry
    """

    max_attempts: int = 3
    min_timeout: float = 1.0
    max_timeout: float = 10.0
    randomize: bool = True
    retry_if: Optional[Callable[[BaseException], bool]] = None
    on_failed_attempt: Optional[Callable[[FailedAttempt], None]] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise InvalidRetryPolicy("max_attempts must be >= 0")
        if self.min_timeout < 0:
            raise InvalidRetryPolicy("min_timeout must be >= 0")
        if self.max_timeout < self.min_timeout:
            raise InvalidRetryPolicy("max_timeout must be >= min_timeout")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        """Build the default policy from application settings."""
        return cls(
            max_attempts=settings.MAX_RETRIES,
            min_timeout=settings.RETRY_MIN_TIMEOUT,
            max_timeout=settings.RETRY_MAX_TIMEOUT,
            randomize=settings.RETRY_RANDOMIZE,
        )


def compute_backoff(
    retry_index: int,
    policy: RetryPolicy,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Backoff in seconds before retry number `retry_index` (0-indexed).
    
    Without jitter the result is exactly min(min_timeout * 2**k, max_timeout);
    with jitter it lies in [base, base * 1.1).
    """
    base = min(policy.min_timeout * (2 ** retry_index), policy.max_timeout)
    if not policy.randomize:
        return base
    jitter = rng() * JITTER_RANGE
    return base * (1 + jitter)


class RetryEngine:
    """
    Runs async operations under a RetryPolicy.
    
    The engine is stateless between calls; a single instance can serve
    many concurrent operations.
    """

    def __init__(self, policy: RetryPolicy):
        self.policy = policy

    def _should_retry(self, error: BaseException) -> bool:
        # Adapters have already classified these; never retry them.
        if isinstance(error, NonRetriableError):
            return False
        if self.policy.retry_if is not None:
            return bool(self.policy.retry_if(error))
        return True

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute `operation` with retry.
        
        Args:
            operation: Zero-argument callable returning an awaitable
        
        Returns:
            The operation's result from the first successful attempt
        
        Raises:
            The last observed error, unchanged, once the budget is spent or
            the error is not retriable.
        """
        max_attempts = self.policy.max_attempts
        
        for attempt in range(max_attempts + 1):
            try:
                return await operation()
            except Exception as error:
                if attempt == max_attempts:
                    if max_attempts > 0:
                        logger.warning(
                            "Retry budget exhausted",
                            attempts=attempt + 1,
                            error_type=type(error).__name__,
                        )
                    raise
                
                if not self._should_retry(error):
                    logger.debug(
                        "Error is not retriable, giving up",
                        attempt=attempt + 1,
                        error_type=type(error).__name__,
                    )
                    raise
                
                if self.policy.on_failed_attempt is not None:
                    self.policy.on_failed_attempt(
                        FailedAttempt.from_error(
                            error,
                            attempt_number=attempt + 1,
                            retries_left=max_attempts - attempt - 1,
                        )
                    )
                
                delay = compute_backoff(attempt, self.policy)
                retries_total.labels(error_type=type(error).__name__).inc()
                logger.debug(
                    f"Retrying in {round(delay * 1000)}ms...",
                    attempt=attempt + 1,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                await asyncio.sleep(delay)
        
        # Unreachable: the loop either returns or raises
        raise RuntimeError("Retry loop exhausted without result or error")


async def run_with_retry(
    operation: Callable[[], Awaitable[T]], policy: RetryPolicy
) -> T:
    """Execute `operation` under `policy`. See RetryEngine.execute."""
    return await RetryEngine(policy).execute(operation)
