"""
FastAPI dependency injection for the proxy relay.

The relay instance is attached to `app.state.relay` when the app is built;
routes reach its configuration and upstream client through these
dependencies rather than through module-level globals.
"""

from typing import TYPE_CHECKING

import httpx
from fastapi import Request

from llm_gateway.proxy.models import ProxyConfig

if TYPE_CHECKING:
    from llm_gateway.proxy.server import ProxyRelay


def get_relay(request: Request) -> "ProxyRelay":
    """Relay owning the current application."""
    return request.app.state.relay


def get_proxy_config(request: Request) -> ProxyConfig:
    """Relay configuration (immutable)."""
    return get_relay(request).config


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    """
    Upstream HTTP client.
    
    Shared across requests for connection pooling; each forwarded request
    still owns its own upstream response.
    """
    return get_relay(request).http_client
