"""
Proxy relay routes.

- GET /health: liveness, never touches the upstream
- ANY /proxy/{provider}[/{path}]: forward to the provider's API base URL

Forwarded requests carry only the caller's Authorization header plus the
relay's own Content-Type and User-Agent. Upstream responses come back with
their status code and headers (minus CORS and framing headers). Event
streams are relayed chunk-for-chunk; everything else is buffered, parsed as
JSON and re-emitted.
"""

from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from llm_gateway.exceptions import ProxyAuthError, UnknownProviderError, UpstreamTransportError
from llm_gateway.monitoring.metrics import proxy_requests_total, proxy_upstream_errors_total
from llm_gateway.proxy.dependencies import get_proxy_config, get_upstream_client
from llm_gateway.proxy.models import HealthResponse, ProxyConfig

logger = structlog.get_logger(__name__)

router = APIRouter()

BEARER_PREFIX = "Bearer "

FORWARDED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]

# Recomputed by the relay for its own response
_FRAMING_HEADERS = frozenset({"content-length", "content-encoding", "transfer-encoding", "connection"})

EVENT_STREAM_HEADERS = {
    "content-type": "text/event-stream",
    "cache-control": "no-cache",
    "connection": "keep-alive",
}


def build_target_url(upstream_base: str, path: str, query: str = "") -> str:
    """
    Join the upstream base URL with the path remainder and query string.

    Examples:
        >>> build_target_url("https://api.openai.com/v1", "chat/completions")
        'https://api.openai.com/v1/chat/completions'
    """
    target = upstream_base.rstrip("/")
    if path:
        target = f"{target}/{path.lstrip('/')}"
    if query:
        target = f"{target}?{query}"
    return target


def filter_response_headers(headers: httpx.Headers) -> dict[str, str]:
    """
    Copy upstream response headers for the outbound response.

    CORS headers are owned by the relay's own CORS layer and never copied;
    framing headers are recomputed for the relayed body.
    """
    filtered: dict[str, str] = {}
    for name, value in headers.items():
        key = name.lower()
        if key.startswith("access-control-") or key in _FRAMING_HEADERS:
            continue
        filtered[key] = value
    return filtered


def raw_path_remainder(request: Request) -> str:
    """
    Path after `/proxy/{provider}`, exactly as the client sent it.

    Read from the undecoded ASGI `raw_path` so percent-encoded characters
    (`%3F`, `%23`, `%2F`) reach the upstream still encoded.
    """
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    path = raw_path.split(b"?", 1)[0].decode("latin-1")
    # ["", "proxy", "<provider>", "<rest>"]
    segments = path.split("/", 3)
    return segments[3] if len(segments) > 3 else ""


def is_event_stream(content_type: Optional[str]) -> bool:
    return bool(content_type) and "text/event-stream" in content_type.lower()


async def relay_event_stream(upstream: httpx.Response, provider: str) -> AsyncIterator[bytes]:
    """
    Yield upstream body bytes as they arrive, untransformed.

    The upstream response is closed on every exit path. A read failure ends
    the relayed body with whatever was already written.
    """
    chunks = 0
    try:
        async for chunk in upstream.aiter_bytes():
            chunks += 1
            yield chunk
    except httpx.HTTPError as e:
        proxy_upstream_errors_total.labels(provider=provider, error_type=type(e).__name__).inc()
        logger.warning(
            "Upstream stream interrupted",
            provider=provider,
            chunks=chunks,
            error=str(e),
        )
    finally:
        await upstream.aclose()
        logger.debug("Upstream stream closed", provider=provider, chunks=chunks)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check. Makes no upstream call."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.api_route("/proxy/{provider}", methods=FORWARDED_METHODS)
@router.api_route("/proxy/{provider}/{path:path}", methods=FORWARDED_METHODS)
async def forward(
    provider: str,
    request: Request,
    config: ProxyConfig = Depends(get_proxy_config),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> Response:
    """
    Forward a request to the provider's upstream API.

    Raises:
        UnknownProviderError: No upstream configured for `provider` (404)
        ProxyAuthError: Authorization missing or not a bearer token (401)
        UpstreamTransportError: Upstream unreachable or returned a non-JSON body (500)
    """
    upstream_base = config.upstreams.get(provider)
    if upstream_base is None:
        raise UnknownProviderError(
            f"No upstream configured for provider '{provider}'",
            details={"provider": provider},
        )

    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise ProxyAuthError("Missing or invalid Authorization header")

    target_url = build_target_url(
        upstream_base, raw_path_remainder(request), request.url.query
    )
    logger.info("Proxying to upstream", provider=provider, target_url=target_url)

    body = await request.body() if request.method not in ("GET", "HEAD") else None
    upstream_request = client.build_request(
        request.method,
        target_url,
        headers={
            "Authorization": auth_header,
            "Content-Type": "application/json",
            "User-Agent": config.user_agent,
        },
        content=body or None,
    )

    try:
        upstream = await client.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        proxy_upstream_errors_total.labels(provider=provider, error_type=type(e).__name__).inc()
        raise UpstreamTransportError(
            str(e) or type(e).__name__,
            details={"provider": provider, "target_url": target_url, "error_type": type(e).__name__},
        ) from e

    headers = filter_response_headers(upstream.headers)

    if is_event_stream(upstream.headers.get("content-type")):
        headers.update(EVENT_STREAM_HEADERS)
        proxy_requests_total.labels(
            provider=provider, status_code=str(upstream.status_code), streaming="true"
        ).inc()
        logger.info(f"Proxy response: {upstream.status_code}", url=target_url, streaming=True)
        return StreamingResponse(
            relay_event_stream(upstream, provider),
            status_code=upstream.status_code,
            headers=headers,
            background=BackgroundTask(upstream.aclose),
        )

    try:
        raw_body = await upstream.aread()
    except httpx.HTTPError as e:
        proxy_upstream_errors_total.labels(provider=provider, error_type=type(e).__name__).inc()
        raise UpstreamTransportError(
            str(e) or type(e).__name__,
            details={"provider": provider, "target_url": target_url, "error_type": type(e).__name__},
        ) from e
    finally:
        await upstream.aclose()

    proxy_requests_total.labels(
        provider=provider, status_code=str(upstream.status_code), streaming="false"
    ).inc()
    logger.info(f"Proxy response: {upstream.status_code}", url=target_url, streaming=False)

    if not raw_body:
        return Response(status_code=upstream.status_code, headers=headers)

    try:
        data = upstream.json()
    except ValueError as e:
        raise UpstreamTransportError(
            f"Upstream returned a non-JSON body: {e}",
            details={"provider": provider, "target_url": target_url, "error_type": type(e).__name__},
        ) from e

    return JSONResponse(content=data, status_code=upstream.status_code, headers=headers)
