"""
Credential redaction for request logging.

Raw credentials must never reach the log sink: the Authorization value and
any API-key header are replaced with fixed placeholders before logging.
"""

from typing import Mapping


AUTHORIZATION_PLACEHOLDER = "Bearer [REDACTED]"
API_KEY_PLACEHOLDER = "[REDACTED]"

_API_KEY_HEADERS = frozenset({"x-api-key", "api-key"})


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Return a copy of `headers` safe for logging.
    
    Header names are lower-cased. Authorization (any scheme) becomes
    "Bearer [REDACTED]"; API-key headers become "[REDACTED]".
    
    Examples:
        >>> sanitize_headers({"Authorization": "Bearer secret123", "Accept": "*/*"})
        {'authorization': 'Bearer [REDACTED]', 'accept': '*/*'}
    """
    sanitized: dict[str, str] = {}
    for name, value in headers.items():
        key = name.lower()
        if key == "authorization":
            sanitized[key] = AUTHORIZATION_PLACEHOLDER
        elif key in _API_KEY_HEADERS:
            sanitized[key] = API_KEY_PLACEHOLDER
        else:
            sanitized[key] = value
    return sanitized


def redact_credentials(logger, method_name: str, event_dict: dict) -> dict:
    """
    structlog processor: scrub credentials from every log event.
    
    Catches top-level `authorization` / API-key fields and any `headers`
    mapping that reached the logger without going through sanitize_headers.
    """
    for key in list(event_dict):
        lowered = key.lower()
        if lowered == "authorization":
            event_dict[key] = AUTHORIZATION_PLACEHOLDER
        elif lowered in _API_KEY_HEADERS or lowered == "api_key":
            event_dict[key] = API_KEY_PLACEHOLDER
    
    headers = event_dict.get("headers")
    if isinstance(headers, Mapping):
        event_dict["headers"] = sanitize_headers(headers)
    return event_dict
