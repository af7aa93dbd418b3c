"""
Forwarding HTTP relay for LLM provider APIs.

Components:
- ProxyRelay: FastAPI app + in-process uvicorn lifecycle (start/stop)
- ProxyConfig: Relay configuration (port, CORS, upstreams)
- sanitize_headers: Credential redaction for request logs
"""

from llm_gateway.proxy.models import DEFAULT_UPSTREAMS, ProxyConfig
from llm_gateway.proxy.redaction import sanitize_headers
from llm_gateway.proxy.server import ProxyRelay

__all__ = [
    "DEFAULT_UPSTREAMS",
    "ProxyConfig",
    "ProxyRelay",
    "sanitize_headers",
]
