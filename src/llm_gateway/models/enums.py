"""
Enumerations for LLM Gateway data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class Role(str, Enum):
    """Chat message role, as understood by OpenAI-compatible chat APIs."""
    
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class TransportMode(str, Enum):
    """
    How a provider adapter reaches the upstream API.
    
    DIRECT talks to the provider's base URL; PROXY goes through the
    proxy relay's /proxy/<provider> prefix.
    """
    
    DIRECT = "direct"
    PROXY = "proxy"


class NetworkErrorCode(str, Enum):
    """
    Network fault codes recognized as transient by the error classifier.
    
    Values mirror the POSIX/getaddrinfo names so they read the same in logs
    regardless of which transport produced them.
    """
    
    CONNECTION_RESET = "ECONNRESET"
    DNS_NOT_FOUND = "ENOTFOUND"
    CONNECTION_REFUSED = "ECONNREFUSED"
    TIMED_OUT = "ETIMEDOUT"
