"""
Configuration settings for LLM Gateway.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # === Application ===
    APP_NAME: str = "LLM Gateway"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    
    # === OpenAI-compatible provider ===
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-5"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    
    # === LLM Generation Parameters ===
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4096
    LLM_TIMEOUT: float = 120.0  # seconds, transport-level only
    
    # === Transport ===
    LLM_TRANSPORT: str = "direct"  # "direct" or "proxy"
    PROXY_BASE_URL: Optional[str] = None  # e.g. http://localhost:3000
    
    # === Retry ===
    MAX_RETRIES: int = 3  # Retries after the first attempt
    RETRY_MIN_TIMEOUT: float = 1.0  # seconds
    RETRY_MAX_TIMEOUT: float = 10.0  # seconds
    RETRY_RANDOMIZE: bool = True
    
    # === Proxy Relay ===
    PROXY_HOST: str = "0.0.0.0"
    PROXY_PORT: int = 3000
    PROXY_ENABLE_CORS: bool = True
    ALLOWED_ORIGINS: list[str] = ["*"]
    PROXY_UPSTREAM_TIMEOUT: float = 300.0  # seconds
    
    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance (consumed by the process bootstrapper only)
settings = Settings()
