"""
LLM Gateway: multi-provider LLM query core.

Queries remote LLM providers and normalizes their responses into a common shape:
- Retry engine (exponential backoff with jitter, pluggable retry predicate)
- Provider adapters (single-shot and streamed queries, error classification)
- Proxy relay (forwarding HTTP service for CORS / key-management setups)

Architecture: httpx adapters + FastAPI/uvicorn relay + structlog logging
"""

__version__ = "0.1.0"
