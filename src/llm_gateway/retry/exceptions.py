"""
Retry engine exceptions.

The retry engine itself never wraps errors: the last observed error is
re-raised unchanged. The only engine-level exception is raised for an
invalid policy.
"""


class InvalidRetryPolicy(ValueError):
    """Raised when a RetryPolicy is constructed with inconsistent values."""
    pass
