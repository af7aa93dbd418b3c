"""
Proxy relay configuration and response models.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from llm_gateway.config import Settings


DEFAULT_UPSTREAMS = {"openai": "https://api.openai.com/v1"}


class ProxyConfig(BaseModel):
    """
    Proxy relay configuration.
    
    Supplied by the process bootstrapper; the relay never reads the
    environment itself.
    """
    model_config = ConfigDict(frozen=True)
    
    host: str = Field(default="0.0.0.0", description="Listening interface")
    port: int = Field(default=3000, ge=0, le=65535, description="Listening port (0 = ephemeral)")
    enable_cors: bool = Field(default=True, description="Apply the CORS policy to all routes")
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")
    upstreams: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_UPSTREAMS),
        description="Provider name -> upstream API base URL (served under /proxy/<provider>)"
    )
    user_agent: str = Field(default="LLM-Provider-Proxy/1.0", description="User-Agent sent upstream")
    upstream_timeout: float = Field(default=300.0, gt=0, description="Upstream transport timeout (s)")
    enable_metrics: bool = Field(default=False, description="Expose Prometheus /metrics")
    
    @classmethod
    def from_settings(cls, settings: Settings) -> "ProxyConfig":
        return cls(
            host=settings.PROXY_HOST,
            port=settings.PROXY_PORT,
            enable_cors=settings.PROXY_ENABLE_CORS,
            allowed_origins=settings.ALLOWED_ORIGINS,
            upstreams={"openai": settings.OPENAI_BASE_URL},
            upstream_timeout=settings.PROXY_UPSTREAM_TIMEOUT,
            enable_metrics=settings.PROMETHEUS_ENABLED,
        )


class HealthResponse(BaseModel):
    """Response for GET /health."""
    
    status: str = Field(examples=["ok"])
    timestamp: datetime


class ErrorResponse(BaseModel):
    """JSON error envelope returned by the relay."""
    
    error: str
    message: str | None = None
