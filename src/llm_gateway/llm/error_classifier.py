"""
Error classification for provider calls.

Decides whether a failed call is worth retrying:

- HTTP status >= 500, 429 or 408 -> retriable
- any other 4xx -> non-retriable
- network faults (connection reset, DNS failure, connection refused,
  timeout) -> retriable
- anything unrecognized -> retriable (fail-open)

Also translates httpx exceptions and error responses into the gateway's
ProviderHTTPError / ProviderConnectionError so that classification only
has to look at `status_code` and `error_code`.
"""

import errno
import socket
from typing import Optional

import httpx

from llm_gateway.exceptions import ProviderConnectionError, ProviderHTTPError
from llm_gateway.models.enums import NetworkErrorCode


RETRIABLE_STATUS_CODES = frozenset({408, 429})

RETRIABLE_NETWORK_CODES = frozenset(code.value for code in NetworkErrorCode)

_ERRNO_CODES = {
    errno.ECONNRESET: NetworkErrorCode.CONNECTION_RESET,
    errno.ECONNREFUSED: NetworkErrorCode.CONNECTION_REFUSED,
    errno.ETIMEDOUT: NetworkErrorCode.TIMED_OUT,
}

_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def _iter_chain(error: BaseException):
    """Walk the __cause__/__context__ chain once, guarding against cycles."""
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def network_error_code(error: BaseException) -> Optional[str]:
    """
    Return the NetworkErrorCode value describing `error`, or None.
    
    Looks at an explicit `error_code` / `code` attribute first, then at the
    OS-level exceptions chained under httpx errors, then at the httpx
    exception type itself.
    """
    for exc in _iter_chain(error):
        explicit = getattr(exc, "error_code", None) or getattr(exc, "code", None)
        if isinstance(explicit, str) and explicit in RETRIABLE_NETWORK_CODES:
            return explicit
        if isinstance(exc, socket.gaierror):
            return NetworkErrorCode.DNS_NOT_FOUND.value
        if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
            return NetworkErrorCode.TIMED_OUT.value
        if isinstance(exc, ConnectionRefusedError):
            return NetworkErrorCode.CONNECTION_REFUSED.value
        if isinstance(exc, ConnectionResetError):
            return NetworkErrorCode.CONNECTION_RESET.value
        if isinstance(exc, OSError) and exc.errno in _ERRNO_CODES:
            return _ERRNO_CODES[exc.errno].value
    
    if isinstance(error, httpx.ConnectError):
        message = str(error).lower()
        if any(marker in message for marker in _DNS_FAILURE_MARKERS):
            return NetworkErrorCode.DNS_NOT_FOUND.value
        return NetworkErrorCode.CONNECTION_REFUSED.value
    if isinstance(error, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return NetworkErrorCode.CONNECTION_RESET.value
    return None


def status_code_of(error: BaseException) -> Optional[int]:
    """HTTP status carried by `error` (gateway errors or raw httpx.HTTPStatusError)."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def is_retriable_error(error: BaseException) -> bool:
    """
    Classify `error` as retriable (True) or not (False).
    
    Unclassified errors are retriable: an unknown failure is assumed to be
    transient. Against an upstream that keeps failing with non-standard
    errors this spends the whole retry budget.
    """
    status = status_code_of(error)
    if status is not None:
        if status >= 500:
            return True
        if status in RETRIABLE_STATUS_CODES:
            return True
        if 400 <= status < 500:
            return False
    
    if network_error_code(error) in RETRIABLE_NETWORK_CODES:
        return True
    
    return True


def to_provider_error(error: httpx.HTTPError) -> ProviderConnectionError:
    """Translate an httpx transport failure into a ProviderConnectionError."""
    code = network_error_code(error)
    message = str(error) or type(error).__name__
    return ProviderConnectionError(
        f"Network error: {message}",
        error_code=code,
        details={"error_type": type(error).__name__},
    )


def provider_http_error(response: httpx.Response) -> ProviderHTTPError:
    """
    Build a ProviderHTTPError from an error response whose body has been read.
    
    Uses the OpenAI-style `{"error": {"message": ...}}` envelope when present.
    """
    body = response.text
    message = f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            message = f"HTTP {response.status_code}: {error['message']}"
        elif isinstance(error, str):
            message = f"HTTP {response.status_code}: {error}"
    
    try:
        details = {"url": str(response.request.url)}
    except RuntimeError:
        # Response built without a request attached
        details = {}

    return ProviderHTTPError(
        message,
        status_code=response.status_code,
        body=body,
        details=details,
    )
