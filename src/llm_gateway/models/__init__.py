"""
Pydantic data models for LLM Gateway.

Includes:
- Enums (Role, TransportMode, NetworkErrorCode)
- LLM models (ContextMessage, QueryOptions, TokenUsage, ProviderResult, LLMResponse)
"""

from llm_gateway.models.enums import NetworkErrorCode, Role, TransportMode
from llm_gateway.models.llm_models import (
    ContextMessage,
    LLMResponse,
    ProviderResult,
    QueryOptions,
    TokenUsage,
)

__all__ = [
    # Enums
    "Role",
    "TransportMode",
    "NetworkErrorCode",
    # LLM models
    "ContextMessage",
    "QueryOptions",
    "TokenUsage",
    "ProviderResult",
    "LLMResponse",
]
