"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from typing import Any, Callable

import httpx
import pytest

from llm_gateway.config import Settings
from llm_gateway.retry.engine import RetryPolicy


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.
    
    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            settings = test_settings.model_copy(update={"LLM_TRANSPORT": "proxy"})
    """
    return Settings(
        # === Application ===
        APP_NAME="LLM Gateway (Test)",
        APP_VERSION="0.1.0",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        
        # === Provider ===
        OPENAI_API_KEY="sk-test",
        OPENAI_MODEL="gpt-5",
        OPENAI_BASE_URL="https://api.openai.com/v1",
        
        # === Retry (fast) ===
        MAX_RETRIES=2,
        RETRY_MIN_TIMEOUT=0.01,
        RETRY_MAX_TIMEOUT=0.1,
        RETRY_RANDOMIZE=True,
        
        # === Proxy Relay ===
        PROXY_HOST="127.0.0.1",
        PROXY_PORT=0,
        ALLOWED_ORIGINS=["https://example.com"],
        
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with millisecond backoff (maxAttempts=2, 10ms..100ms)."""
    return RetryPolicy(max_attempts=2, min_timeout=0.01, max_timeout=0.1)


def chat_completion_body(
    content: str = "Hello!",
    model: str = "gpt-5-2025-08-07",
    prompt_tokens: int = 12,
    completion_tokens: int = 30,
) -> dict[str, Any]:
    """OpenAI chat-completion response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


@pytest.fixture
def completion_body() -> Callable[..., dict[str, Any]]:
    """Factory fixture for chat-completion response bodies.
    
    Usage:
        def test_something(completion_body):
            body = completion_body(content="Hi", prompt_tokens=3)
    """
    return chat_completion_body


@pytest.fixture
def mock_http_client():
    """Factory fixture: AsyncClient backed by httpx.MockTransport.
    
    Usage:
        def test_something(mock_http_client):
            client = mock_http_client(lambda request: httpx.Response(200, json={}))
    """
    def _create(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    
    return _create
