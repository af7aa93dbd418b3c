"""
Abstract base provider for LLM queries.

Defines the interface that all provider adapters (OpenAI, OpenAI-compatible
vendors, ...) must adhere to. Concrete adapters only map a prompt to a wire
request and a wire response back to a ProviderResult; this base class owns
the retry loop, error classification and timing.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import AsyncIterator, NoReturn, Optional

import structlog

from llm_gateway.exceptions import NonRetriableError, ProviderNotConfiguredError
from llm_gateway.llm.error_classifier import is_retriable_error
from llm_gateway.models.llm_models import LLMResponse, ProviderResult, QueryOptions
from llm_gateway.monitoring.metrics import (
    llm_latency_seconds,
    llm_requests_total,
    llm_tokens_total,
)
from llm_gateway.retry.engine import RetryPolicy, run_with_retry


logger = structlog.get_logger(__name__)


class BaseProvider(ABC):
    """
    Abstract base class for LLM provider adapters.

    Responsibilities:
    - Hold immutable configuration (API key, defaults, retry policy)
    - Run `_do_query` under the retry engine and stamp latency/timestamp
    - Convert non-retriable errors into NonRetriableError

    Does NOT handle:
    - Wire formats (that's the concrete adapter's job)
    - Fan-out across providers (that's the orchestrator's job)

    Instances share no mutable per-call state, so one adapter can serve
    concurrent queries without locking.
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        default_model: str,
        default_temperature: float = 0.7,
        default_max_tokens: int = 4096,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize base provider. Performs no network I/O.

        Args:
            name: Human-readable provider name (appears in LLMResponse.provider)
            api_key: API key passed through to the provider unchanged
            default_model: Model used when QueryOptions.model is unset
            default_temperature: Temperature used when QueryOptions.temperature is unset
            default_max_tokens: Output token cap used when QueryOptions.max_tokens is unset
            retry_policy: Policy applied to each query (default: RetryPolicy())
        """
        self.name = name
        self.api_key = api_key or ""
        self.default_model = default_model
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens
        self.retry_policy = retry_policy or RetryPolicy()

    def is_available(self) -> bool:
        """True iff a non-empty API key was supplied."""
        return bool(self.api_key)

    def _require_available(self) -> None:
        if not self.is_available():
            raise ProviderNotConfiguredError(f"{self.name} provider is not configured")

    def is_retriable_error(self, error: BaseException) -> bool:
        """Provider-specific retry classification. Defaults to the shared classifier."""
        return is_retriable_error(error)

    def _raise_classified(self, error: Exception) -> NoReturn:
        """Re-raise `error` unchanged if retriable, otherwise wrapped in NonRetriableError."""
        if self.is_retriable_error(error):
            raise error
        raise NonRetriableError(error) from error

    async def query(self, prompt: str, options: Optional[QueryOptions] = None) -> LLMResponse:
        """
        Send a single-shot query and return the normalized response.

        Args:
            prompt: User prompt (sent as the last message)
            options: Optional system prompt, context turns and overrides

        Returns:
            LLMResponse with content, usage, latency and timestamp

        Raises:
            ProviderNotConfiguredError: No API key
            NonRetriableError: Client-side fault (4xx other than 408/429)
            LLMClientError: Retriable fault that survived the whole retry budget
        """
        self._require_available()
        options = options or QueryOptions()

        async def attempt() -> ProviderResult:
            try:
                return await self._do_query(prompt, options)
            except Exception as error:
                self._raise_classified(error)

        start_time = time.perf_counter()
        try:
            result = await run_with_retry(attempt, self.retry_policy)
        except NonRetriableError:
            llm_requests_total.labels(provider=self.name, mode="query", outcome="non_retriable").inc()
            raise
        except Exception:
            llm_requests_total.labels(provider=self.name, mode="query", outcome="retriable").inc()
            raise
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        response = LLMResponse.from_result(
            provider=self.name,
            result=result,
            latency_ms=latency_ms,
            timestamp=datetime.now(timezone.utc),
        )
        self._record_success(response)
        return response

    def _record_success(self, response: LLMResponse) -> None:
        llm_requests_total.labels(provider=self.name, mode="query", outcome="success").inc()
        llm_latency_seconds.labels(provider=self.name, model=response.model).observe(
            response.latency_ms / 1000.0
        )
        if response.usage is not None:
            llm_tokens_total.labels(
                provider=self.name, model=response.model, token_type="prompt"
            ).inc(response.usage.prompt_tokens)
            llm_tokens_total.labels(
                provider=self.name, model=response.model, token_type="completion"
            ).inc(response.usage.completion_tokens)

        logger.info(
            "Provider query succeeded",
            provider=self.name,
            model=response.model,
            latency_ms=response.latency_ms,
            total_tokens=response.usage.total_tokens if response.usage else None,
        )

    @abstractmethod
    async def _do_query(self, prompt: str, options: QueryOptions) -> ProviderResult:
        """
        Execute one non-streaming request and map the response.

        Implementations raise on failure; classification and retry happen in
        `query`. Must not stamp timing.
        """
        pass

    @abstractmethod
    def stream(self, prompt: str, options: Optional[QueryOptions] = None) -> AsyncIterator[str]:
        """
        Stream content fragments as they arrive, in upstream order.

        Implemented as an async generator. Not restartable: issue a new call
        to stream again. Closing the generator early releases the underlying
        HTTP response.
        """
        pass

    async def close(self):
        """
        Close client connections and cleanup resources.

        Default implementation does nothing. Subclasses should override if
        they hold persistent connections.
        """
        logger.debug("Closing provider", provider=self.name)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self.name}, "
            f"default_model={self.default_model}, "
            f"available={self.is_available()})"
        )
