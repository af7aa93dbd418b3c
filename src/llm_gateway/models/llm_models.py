"""
LLM-specific data models for the query/response cycle.

These models are provider-agnostic: every adapter receives QueryOptions and
produces a ProviderResult, which the wrapping layer turns into an LLMResponse
once timing is known.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llm_gateway.models.enums import Role


class ContextMessage(BaseModel):
    """A single prior conversation turn passed as context."""
    model_config = ConfigDict(frozen=True)
    
    role: Role
    content: str


class QueryOptions(BaseModel):
    """
    Per-call query options.
    
    Unset generation parameters fall back to the adapter's defaults.
    """
    model_config = ConfigDict(frozen=True)
    
    system_prompt: Optional[str] = Field(default=None, description="Optional system message, sent first")
    context: tuple[ContextMessage, ...] = Field(
        default=(),
        description="Ordered context turns, sent between the system message and the prompt"
    )
    model: Optional[str] = Field(default=None, description="Model override")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Maximum output tokens")


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""
    model_config = ConfigDict(frozen=True)
    
    prompt_tokens: int = Field(..., ge=0)
    completion_tokens: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)
    
    @model_validator(mode="after")
    def _check_total(self) -> "TokenUsage":
        if self.total_tokens != self.prompt_tokens + self.completion_tokens:
            raise ValueError(
                "total_tokens must equal prompt_tokens + completion_tokens "
                f"({self.total_tokens} != {self.prompt_tokens} + {self.completion_tokens})"
            )
        return self
    
    @classmethod
    def from_counts(cls, prompt_tokens: int, completion_tokens: int) -> "TokenUsage":
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )


class ProviderResult(BaseModel):
    """
    Raw output of a provider adapter's request/response mapping.
    
    Carries no timing: latency and timestamp belong to the layer that
    started the timer.
    """
    model_config = ConfigDict(frozen=True)
    
    model: str = Field(..., description="Model identifier resolved by the provider")
    content: str = Field(default="", description="Generated text (may be empty)")
    usage: Optional[TokenUsage] = None


class LLMResponse(BaseModel):
    """Normalized, timed response from a single non-streaming query."""
    model_config = ConfigDict(frozen=True)
    
    provider: str = Field(..., description="Provider name (e.g., 'OpenAI')")
    model: str = Field(..., description="Resolved model identifier")
    content: str = Field(default="", description="Generated text (may be empty)")
    usage: Optional[TokenUsage] = None
    latency_ms: int = Field(..., ge=0, description="End-to-end latency including retries")
    timestamp: datetime = Field(..., description="When the response was finalized")
    
    @classmethod
    def from_result(
        cls,
        provider: str,
        result: ProviderResult,
        latency_ms: int,
        timestamp: datetime,
    ) -> "LLMResponse":
        return cls(
            provider=provider,
            model=result.model,
            content=result.content,
            usage=result.usage,
            latency_ms=latency_ms,
            timestamp=timestamp,
        )
