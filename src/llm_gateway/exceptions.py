"""
Custom exceptions for LLM Gateway.

These exceptions provide structured error handling for provider calls and
the proxy relay, allowing the retry engine to distinguish transient faults
from client-side defects, and the relay to map faults to HTTP responses.

Taxonomy:
- Retriable: ProviderHTTPError (5xx/429/408), ProviderConnectionError,
  and any error the classifier does not recognize
- NonRetriableError: client-side faults (other 4xx), wraps the original
- ProxyAuthError: missing/malformed Authorization at the relay (HTTP 401)
- UpstreamTransportError: relay could not reach the upstream (HTTP 500)
"""

from typing import Optional


class LLMClientError(Exception):
    """
    Base exception for all LLM Gateway errors.
    
    All gateway-specific exceptions inherit from this to allow catching
    any provider-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProviderHTTPError(LLMClientError):
    """
    Raised when the provider answers with an HTTP error status.
    
    Retriable for 5xx, 429 and 408; the adapter converts every other
    4xx into NonRetriableError before it reaches the retry engine.
    """
    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[str] = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.body = body


class ProviderConnectionError(LLMClientError):
    """
    Raised when the provider (or the relay in front of it) cannot be reached.
    
    `error_code` holds a NetworkErrorCode value (ECONNRESET, ENOTFOUND,
    ECONNREFUSED, ETIMEDOUT) when the underlying fault was recognized.
    """
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.error_code = error_code


class NonRetriableError(LLMClientError):
    """
    Raised when retrying the same request cannot succeed.
    
    Wraps the original error as `cause` (also chained as __cause__).
    The retry engine never retries this error.
    """
    def __init__(self, cause: BaseException, details: dict | None = None):
        super().__init__(str(cause), details)
        self.cause = cause
        self.status_code = getattr(cause, "status_code", None)


class ProviderNotConfiguredError(LLMClientError):
    """Raised when querying an adapter that has no API key."""
    pass


class ProxyAuthError(LLMClientError):
    """
    Raised by the relay when Authorization is missing or not a bearer token.
    
    Client-request defect: surfaced as HTTP 401, never retried by the relay.
    """
    pass


class UpstreamTransportError(LLMClientError):
    """
    Raised by the relay when the upstream provider cannot be reached.
    
    Surfaced as HTTP 500 with a JSON error envelope.
    """
    pass


class UnknownProviderError(LLMClientError):
    """Raised by the relay for a /proxy/<provider> prefix it has no upstream for."""
    pass
