"""
Retry attempt metadata.

This module defines the FailedAttempt dataclass handed to the
`on_failed_attempt` callback before every retry.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FailedAttempt:
    """
    Annotated record of one failed attempt.
    
    Attributes:
        kind: Class name of the error (e.g. "ProviderHTTPError")
        message: Error message
        cause: The original exception, unchanged
        attempt_number: 1-indexed number of the attempt that just failed
        retries_left: Attempts remaining after this one
    """

    kind: str
    message: str
    cause: BaseException
    attempt_number: int
    retries_left: int

    def __post_init__(self) -> None:
        """Validate metadata invariants."""
        if self.attempt_number < 1:
            raise ValueError("attempt_number must be >= 1")
        
        if self.retries_left < 0:
            raise ValueError("retries_left must be >= 0")

    @classmethod
    def from_error(
        cls, error: BaseException, attempt_number: int, retries_left: int
    ) -> "FailedAttempt":
        return cls(
            kind=type(error).__name__,
            message=str(error),
            cause=error,
            attempt_number=attempt_number,
            retries_left=retries_left,
        )
