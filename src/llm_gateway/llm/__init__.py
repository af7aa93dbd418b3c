"""
Provider adapter abstraction and implementations.

Components:
- BaseProvider: Abstract base class (retry, classification, timing)
- OpenAIProvider: OpenAI chat-completions adapter (direct or proxied)
- build_messages: Ordered chat message construction
- error_classifier: Retriable / non-retriable classification
- streaming: Server-sent event parsing for streamed completions
"""

from llm_gateway.llm.base_client import BaseProvider
from llm_gateway.llm.error_classifier import is_retriable_error, network_error_code
from llm_gateway.llm.message_builder import build_messages
from llm_gateway.llm.openai_client import OpenAIProvider

__all__ = [
    "BaseProvider",
    "OpenAIProvider",
    "build_messages",
    "is_retriable_error",
    "network_error_code",
]
