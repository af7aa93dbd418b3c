"""
Fan-out of one prompt across several provider adapters.

Thin layer over the adapters: every configured provider receives the same
prompt concurrently and each outcome (response or error) is reported
independently. One provider failing never cancels the others.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from llm_gateway.config import Settings
from llm_gateway.llm.base_client import BaseProvider
from llm_gateway.llm.openai_client import OpenAIProvider
from llm_gateway.models.enums import TransportMode
from llm_gateway.models.llm_models import LLMResponse, QueryOptions
from llm_gateway.retry.engine import RetryPolicy


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProviderOutcome:
    """Result of querying a single provider: exactly one of response/error is set."""
    provider: str
    response: Optional[LLMResponse] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderOrchestrator:
    """
    Queries a set of provider adapters side by side.

    Providers without an API key are skipped; they never appear in the
    outcome list.
    """

    def __init__(self, providers: Sequence[BaseProvider]):
        self.providers = list(providers)

    def available_providers(self) -> list[BaseProvider]:
        return [p for p in self.providers if p.is_available()]

    async def query_all(
        self, prompt: str, options: Optional[QueryOptions] = None
    ) -> list[ProviderOutcome]:
        """
        Send `prompt` to every available provider concurrently.

        Returns:
            One ProviderOutcome per available provider, in provider order
        """
        providers = self.available_providers()
        if not providers:
            logger.warning("No providers configured", total=len(self.providers))
            return []

        logger.info(
            "Querying providers",
            providers=[p.name for p in providers],
        )

        results = await asyncio.gather(
            *(p.query(prompt, options) for p in providers),
            return_exceptions=True,
        )

        outcomes: list[ProviderOutcome] = []
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # CancelledError / KeyboardInterrupt are not provider faults
                    raise result
                logger.warning(
                    "Provider query failed",
                    provider=provider.name,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                outcomes.append(ProviderOutcome(provider=provider.name, error=result))
            else:
                outcomes.append(ProviderOutcome(provider=provider.name, response=result))

        logger.info(
            "Provider fan-out complete",
            succeeded=sum(1 for o in outcomes if o.ok),
            failed=sum(1 for o in outcomes if not o.ok),
        )
        return outcomes

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def build_providers(settings: Settings) -> list[BaseProvider]:
    """Construct the provider adapters described by `settings`."""
    policy = RetryPolicy.from_settings(settings)
    transport = TransportMode(settings.LLM_TRANSPORT.lower())

    return [
        OpenAIProvider(
            api_key=settings.OPENAI_API_KEY,
            default_model=settings.OPENAI_MODEL,
            default_temperature=settings.LLM_TEMPERATURE,
            default_max_tokens=settings.LLM_MAX_TOKENS,
            transport=transport,
            proxy_base_url=settings.PROXY_BASE_URL,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.LLM_TIMEOUT,
            retry_policy=policy,
        ),
    ]
