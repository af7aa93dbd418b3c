"""
OpenAI chat-completions adapter.

Communicates with any OpenAI-compatible API using httpx AsyncClient, either
directly or through the proxy relay. Supports:
- Single-shot completions (POST /chat/completions, stream=false)
- Streamed completions (server-sent events, stream=true)
- Connection pooling via a persistent, lazily created AsyncClient
"""

from typing import Any, AsyncIterator, Optional

import httpx
import structlog

from llm_gateway.exceptions import LLMClientError, ProviderHTTPError
from llm_gateway.llm.base_client import BaseProvider
from llm_gateway.llm.error_classifier import provider_http_error, to_provider_error
from llm_gateway.llm.message_builder import build_messages
from llm_gateway.llm.streaming import iter_content_deltas
from llm_gateway.models.enums import TransportMode
from llm_gateway.models.llm_models import ProviderResult, QueryOptions, TokenUsage
from llm_gateway.monitoring.metrics import llm_requests_total
from llm_gateway.retry.engine import RetryPolicy


logger = structlog.get_logger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
CHAT_COMPLETIONS_PATH = "/chat/completions"


class OpenAIProvider(BaseProvider):
    """
    OpenAI-specific adapter using httpx for async HTTP communication.

    Transport:
    - DIRECT: {base_url}/chat/completions
    - PROXY:  {proxy_base_url}/proxy/{provider_id}/chat/completions

    The Authorization header is identical in both modes; the relay is
    transparent to this adapter's contract.
    """

    provider_id = "openai"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-5",
        default_temperature: float = 0.7,
        default_max_tokens: int = 4096,
        *,
        transport: TransportMode = TransportMode.DIRECT,
        proxy_base_url: Optional[str] = None,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = 120.0,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connection_limits: Optional[httpx.Limits] = None,
        name: str = "OpenAI",
    ):
        """
        Initialize OpenAI adapter.

        Args:
            api_key: Provider API key (sent as "Authorization: Bearer <key>")
            default_model: Model used when QueryOptions.model is unset
            default_temperature: Default sampling temperature
            default_max_tokens: Default output token cap
            transport: DIRECT or PROXY
            proxy_base_url: Relay base URL, required when transport is PROXY
            base_url: Upstream API base URL for DIRECT transport
            timeout: Transport-level timeout in seconds
            retry_policy: Retry policy applied to `query`
            http_client: Injected AsyncClient (not closed by this adapter)
            connection_limits: httpx pool limits for the owned client
            name: Provider name reported in responses
        """
        super().__init__(
            name=name,
            api_key=api_key,
            default_model=default_model,
            default_temperature=default_temperature,
            default_max_tokens=default_max_tokens,
            retry_policy=retry_policy,
        )

        transport = TransportMode(transport)
        if transport is TransportMode.PROXY and not proxy_base_url:
            raise ValueError("proxy_base_url is required when transport is 'proxy'")

        self.transport = transport
        self.proxy_base_url = proxy_base_url.rstrip("/") if proxy_base_url else None
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=20,
                keepalive_expiry=30.0,
            )
        self._connection_limits = connection_limits
        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None

        logger.info(
            "OpenAI provider initialized",
            transport=self.transport.value,
            endpoint=self.endpoint_base,
            default_model=default_model,
            available=self.is_available(),
        )

    @property
    def endpoint_base(self) -> str:
        """Base URL requests are sent to, after applying the transport mode."""
        if self.transport is TransportMode.PROXY:
            return f"{self.proxy_base_url}/proxy/{self.provider_id}"
        return self.base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                follow_redirects=True,
            )
            self._owns_client = True
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str, options: QueryOptions, stream: bool) -> dict[str, Any]:
        """
        Build the chat-completions payload.

        {
            "model": "gpt-5",
            "messages": [{"role": "system", ...}, ..., {"role": "user", ...}],
            "temperature": 0.7,
            "max_tokens": 4096,
            "stream": false
        }
        """
        return {
            "model": options.model or self.default_model,
            "messages": build_messages(prompt, options),
            "temperature": (
                options.temperature if options.temperature is not None else self.default_temperature
            ),
            "max_tokens": (
                options.max_tokens if options.max_tokens is not None else self.default_max_tokens
            ),
            "stream": stream,
        }

    @staticmethod
    def _parse_completion(data: dict[str, Any], requested_model: str) -> ProviderResult:
        """
        Map a chat-completion response body to a ProviderResult.

        Response:
        {
            "model": "gpt-5-2025-08-07",
            "choices": [{"message": {"role": "assistant", "content": "..."}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42}
        }
        """
        choices = data.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        content = message.get("content") or ""

        usage = None
        raw_usage = data.get("usage")
        if raw_usage:
            usage = TokenUsage.from_counts(
                prompt_tokens=raw_usage.get("prompt_tokens") or 0,
                completion_tokens=raw_usage.get("completion_tokens") or 0,
            )

        return ProviderResult(
            model=data.get("model") or requested_model,
            content=content,
            usage=usage,
        )

    async def _do_query(self, prompt: str, options: QueryOptions) -> ProviderResult:
        payload = self._build_payload(prompt, options, stream=False)
        url = f"{self.endpoint_base}{CHAT_COMPLETIONS_PATH}"

        logger.info(
            "Sending chat completion request",
            provider=self.name,
            model=payload["model"],
            message_count=len(payload["messages"]),
            transport=self.transport.value,
        )

        client = await self._get_client()
        try:
            response = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Provider transport error", provider=self.name, error=str(e))
            raise to_provider_error(e) from e

        if response.status_code >= 400:
            error = provider_http_error(response)
            logger.warning(
                "Provider HTTP error",
                provider=self.name,
                status_code=error.status_code,
                error=error.message,
            )
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise LLMClientError(
                "Invalid JSON response from provider",
                details={"parse_error": str(e)},
            ) from e

        return self._parse_completion(data, payload["model"])

    async def stream(
        self, prompt: str, options: Optional[QueryOptions] = None
    ) -> AsyncIterator[str]:
        """
        Stream content fragments from a chat completion.

        The HTTP response is held open only while the consumer iterates and is
        released on normal completion, early close and error alike.

        Raises:
            ProviderNotConfiguredError: No API key
            NonRetriableError: Client-side fault (4xx other than 408/429)
            ProviderHTTPError / ProviderConnectionError: Retriable faults
        """
        self._require_available()
        options = options or QueryOptions()
        payload = self._build_payload(prompt, options, stream=True)
        url = f"{self.endpoint_base}{CHAT_COMPLETIONS_PATH}"

        logger.info(
            "Opening chat completion stream",
            provider=self.name,
            model=payload["model"],
            message_count=len(payload["messages"]),
            transport=self.transport.value,
        )

        client = await self._get_client()
        fragments = 0
        try:
            async with client.stream(
                "POST", url, json=payload, headers=self._headers()
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise provider_http_error(response)

                async for fragment in iter_content_deltas(response.aiter_lines()):
                    fragments += 1
                    yield fragment
        except httpx.HTTPError as e:
            llm_requests_total.labels(provider=self.name, mode="stream", outcome="error").inc()
            logger.warning("Stream transport error", provider=self.name, error=str(e))
            self._raise_classified(to_provider_error(e))
        except ProviderHTTPError as e:
            llm_requests_total.labels(provider=self.name, mode="stream", outcome="error").inc()
            logger.warning(
                "Stream HTTP error", provider=self.name, status_code=e.status_code, error=e.message
            )
            self._raise_classified(e)

        llm_requests_total.labels(provider=self.name, mode="stream", outcome="success").inc()
        logger.info("Chat completion stream finished", provider=self.name, fragments=fragments)

    async def close(self):
        """Close the HTTP client connection if this adapter owns it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed OpenAI client connection")
