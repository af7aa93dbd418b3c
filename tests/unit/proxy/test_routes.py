"""
Unit tests for the proxy relay routes.

Upstream providers are replaced by httpx.MockTransport clients injected
into the relay; requests go through FastAPI's TestClient.
"""

import json
from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient

from llm_gateway.proxy.models import ProxyConfig
from llm_gateway.proxy.routes import build_target_url, filter_response_headers, relay_event_stream
from llm_gateway.proxy.server import ProxyRelay


AUTH = {"Authorization": "Bearer sk-test"}


def fail_if_called(request: httpx.Request) -> httpx.Response:
    pytest.fail(f"Upstream must not be called (got {request.method} {request.url})")


def make_client(handler, mock_http_client, **config) -> TestClient:
    relay = ProxyRelay(ProxyConfig(**config), http_client=mock_http_client(handler))
    return TestClient(relay.app, raise_server_exceptions=False)


# ============================================================================
# Health
# ============================================================================


def test_health_makes_no_upstream_call(mock_http_client):
    client = make_client(
        fail_if_called,
        mock_http_client,
        upstreams={"openai": "http://unreachable.invalid:9/v1"},
    )
    
    response = client.get("/health")
    
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")).tzinfo is not None


def test_health_sets_request_id(mock_http_client):
    client = make_client(fail_if_called, mock_http_client)
    
    response = client.get("/health")
    
    assert response.headers["x-request-id"]


# ============================================================================
# Authorization and routing
# ============================================================================


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "sk-test"},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "bearer sk-test"},
    ],
)
def test_missing_or_malformed_auth_is_401_before_upstream(headers, mock_http_client):
    client = make_client(fail_if_called, mock_http_client)
    
    response = client.post("/proxy/openai/chat/completions", json={"model": "gpt-5"}, headers=headers)
    
    assert response.status_code == 401
    assert response.json() == {"error": "Missing or invalid Authorization header"}


def test_unknown_provider_is_404(mock_http_client):
    client = make_client(fail_if_called, mock_http_client)
    
    response = client.post("/proxy/nope/chat/completions", json={}, headers=AUTH)
    
    assert response.status_code == 404
    assert response.json()["error"] == "Unknown provider"


def test_unknown_route_is_404(mock_http_client):
    client = make_client(fail_if_called, mock_http_client)
    
    assert client.get("/nope").status_code == 404


# ============================================================================
# Forwarding
# ============================================================================


def test_forwards_request_to_provider_base_url(mock_http_client, completion_body):
    captured: list[httpx.Request] = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=completion_body())
    
    client = make_client(handler, mock_http_client)
    payload = {"model": "gpt-5", "messages": [{"role": "user", "content": "Hi"}], "stream": False}
    
    response = client.post(
        "/proxy/openai/chat/completions?trace=1",
        json=payload,
        headers={**AUTH, "X-Custom": "dropped", "Cookie": "session=abc"},
    )
    
    assert response.status_code == 200
    assert len(captured) == 1
    upstream = captured[0]
    assert upstream.method == "POST"
    assert str(upstream.url) == "https://api.openai.com/v1/chat/completions?trace=1"
    assert upstream.headers["authorization"] == "Bearer sk-test"
    assert upstream.headers["content-type"] == "application/json"
    assert upstream.headers["user-agent"] == "LLM-Provider-Proxy/1.0"
    assert "x-custom" not in upstream.headers
    assert "cookie" not in upstream.headers
    assert json.loads(upstream.content) == payload


def test_get_is_forwarded_without_body(mock_http_client):
    captured: list[httpx.Request] = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"data": [{"id": "gpt-5"}]})
    
    client = make_client(handler, mock_http_client)
    
    response = client.get("/proxy/openai/models", headers=AUTH)
    
    assert response.status_code == 200
    assert response.json() == {"data": [{"id": "gpt-5"}]}
    assert str(captured[0].url) == "https://api.openai.com/v1/models"
    assert captured[0].content == b""


def test_json_body_is_reemitted_with_all_fields(mock_http_client):
    raw = b'{ "id" : "chatcmpl-1",\n  "nested": {"a": [1, 2, {"b": null}]}, "flag": true }'
    client = make_client(
        lambda request: httpx.Response(
            200, headers={"content-type": "application/json"}, content=raw
        ),
        mock_http_client,
    )
    
    response = client.post("/proxy/openai/chat/completions", json={}, headers=AUTH)
    
    assert response.json() == json.loads(raw)
    assert response.headers["content-type"] == "application/json"


def test_upstream_status_and_headers_are_mirrored(mock_http_client):
    client = make_client(
        lambda request: httpx.Response(
            429,
            headers={
                "x-ratelimit-remaining-requests": "0",
                "retry-after": "2",
                "access-control-allow-origin": "*",
            },
            json={"error": {"message": "Rate limit reached"}},
        ),
        mock_http_client,
    )
    
    response = client.post("/proxy/openai/chat/completions", json={}, headers=AUTH)
    
    assert response.status_code == 429
    assert response.json() == {"error": {"message": "Rate limit reached"}}
    assert response.headers["x-ratelimit-remaining-requests"] == "0"
    assert response.headers["retry-after"] == "2"
    assert "access-control-allow-origin" not in response.headers


def test_percent_encoded_path_is_forwarded_verbatim(mock_http_client):
    captured: list[httpx.Request] = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "a?b#c"})
    
    client = make_client(handler, mock_http_client)
    
    response = client.get("/proxy/openai/files/a%3Fb%23c?limit=1", headers=AUTH)
    
    assert response.status_code == 200
    assert captured[0].url.raw_path == b"/v1/files/a%3Fb%23c?limit=1"
    assert captured[0].url.query == b"limit=1"
    assert captured[0].url.fragment == ""


def test_encoded_slash_stays_in_one_segment(mock_http_client):
    captured: list[httpx.Request] = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={})
    
    client = make_client(handler, mock_http_client)
    
    client.get("/proxy/openai/models/ft%2Fgpt-5", headers=AUTH)
    
    assert captured[0].url.raw_path == b"/v1/models/ft%2Fgpt-5"


@pytest.mark.parametrize("path", ["/proxy/openai", "/proxy/openai/"])
def test_bare_provider_prefix_is_forwarded_to_base_url(path, mock_http_client):
    captured: list[httpx.Request] = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"ok": True})
    
    client = make_client(handler, mock_http_client)
    
    response = client.get(path, headers=AUTH, follow_redirects=False)
    
    assert response.status_code == 200
    assert len(captured) == 1
    assert str(captured[0].url) == "https://api.openai.com/v1"


def test_empty_upstream_body(mock_http_client):
    client = make_client(lambda request: httpx.Response(204), mock_http_client)
    
    response = client.delete("/proxy/openai/files/file-1", headers=AUTH)
    
    assert response.status_code == 204
    assert response.content == b""


def test_upstream_transport_failure_is_500(mock_http_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)
    
    client = make_client(handler, mock_http_client)
    
    response = client.post("/proxy/openai/chat/completions", json={}, headers=AUTH)
    
    assert response.status_code == 500
    assert response.json() == {"error": "Proxy request failed", "message": "Connection refused"}


def test_non_json_upstream_body_is_500(mock_http_client):
    client = make_client(
        lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"),
        mock_http_client,
    )
    
    response = client.post("/proxy/openai/chat/completions", json={}, headers=AUTH)
    
    assert response.status_code == 500
    assert response.json()["error"] == "Proxy request failed"


def test_relay_survives_failed_request(mock_http_client):
    calls = {"n": 0}
    
    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json={"ok": True})
    
    client = make_client(handler, mock_http_client)
    
    assert client.post("/proxy/openai/chat/completions", json={}, headers=AUTH).status_code == 500
    assert client.post("/proxy/openai/chat/completions", json={}, headers=AUTH).json() == {"ok": True}


# ============================================================================
# Streaming
# ============================================================================


SSE_CHUNKS = [
    b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":"lo"}}]}\n\n',
    b": keep-alive\n\n",
    b"data: [DONE]\n\n",
]


async def chunked(chunks):
    for chunk in chunks:
        yield chunk


def test_event_stream_is_relayed_byte_for_byte(mock_http_client):
    client = make_client(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "text/event-stream; charset=utf-8"},
            content=chunked(SSE_CHUNKS),
        ),
        mock_http_client,
    )
    
    with client.stream(
        "POST", "/proxy/openai/chat/completions", json={"stream": True}, headers=AUTH
    ) as response:
        body = b"".join(response.iter_bytes())
    
    assert response.status_code == 200
    assert response.headers["content-type"] == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"
    assert body == b"".join(SSE_CHUNKS)


@pytest.mark.asyncio
async def test_relay_event_stream_preserves_chunks_in_order():
    upstream = httpx.Response(
        200, headers={"content-type": "text/event-stream"}, content=chunked(SSE_CHUNKS)
    )
    
    relayed = [chunk async for chunk in relay_event_stream(upstream, "openai")]
    
    assert relayed == SSE_CHUNKS
    assert upstream.is_closed


@pytest.mark.asyncio
async def test_relay_event_stream_ends_on_read_failure():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    
    async def broken():
        yield SSE_CHUNKS[0]
        raise httpx.ReadError("connection reset", request=request)
    
    upstream = httpx.Response(200, content=broken(), request=request)
    
    relayed = [chunk async for chunk in relay_event_stream(upstream, "openai")]
    
    assert relayed == SSE_CHUNKS[:1]
    assert upstream.is_closed


# ============================================================================
# CORS
# ============================================================================


def preflight(client: TestClient, origin: str):
    return client.options(
        "/proxy/openai/chat/completions",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )


def test_cors_allows_configured_origin_only(mock_http_client):
    client = make_client(
        lambda request: httpx.Response(200, json={"ok": True}),
        mock_http_client,
        allowed_origins=["https://example.com"],
    )
    
    allowed = preflight(client, "https://example.com")
    rejected = preflight(client, "https://other.com")
    
    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "https://example.com"
    assert allowed.headers["access-control-allow-credentials"] == "true"
    assert rejected.status_code == 400
    assert "access-control-allow-origin" not in rejected.headers


def test_cors_applies_to_simple_requests(mock_http_client):
    client = make_client(fail_if_called, mock_http_client, allowed_origins=["https://example.com"])
    
    allowed = client.get("/health", headers={"Origin": "https://example.com"})
    other = client.get("/health", headers={"Origin": "https://other.com"})
    
    assert allowed.headers["access-control-allow-origin"] == "https://example.com"
    assert "access-control-allow-origin" not in other.headers


def test_cors_empty_origin_list_allows_no_origin(mock_http_client):
    client = make_client(fail_if_called, mock_http_client, allowed_origins=[])
    
    simple = client.get("/health", headers={"Origin": "https://evil.com"})
    rejected = preflight(client, "https://evil.com")
    
    assert simple.status_code == 200
    assert "access-control-allow-origin" not in simple.headers
    assert rejected.status_code == 400
    assert "access-control-allow-origin" not in rejected.headers


def test_unexpected_error_is_json_500_with_cors_headers(mock_http_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("boom")
    
    client = make_client(handler, mock_http_client, allowed_origins=["https://example.com"])
    
    response = client.post(
        "/proxy/openai/chat/completions",
        json={},
        headers={**AUTH, "Origin": "https://example.com"},
    )
    
    assert response.status_code == 500
    assert response.json() == {"error": "Internal proxy server error", "message": "boom"}
    assert response.headers["access-control-allow-origin"] == "https://example.com"
    assert response.headers["x-request-id"]


def test_cors_disabled(mock_http_client):
    client = make_client(fail_if_called, mock_http_client, enable_cors=False)
    
    response = client.get("/health", headers={"Origin": "https://example.com"})
    
    assert "access-control-allow-origin" not in response.headers


# ============================================================================
# Helpers
# ============================================================================


@pytest.mark.parametrize(
    "base,path,query,expected",
    [
        ("https://api.openai.com/v1", "chat/completions", "", "https://api.openai.com/v1/chat/completions"),
        ("https://api.openai.com/v1/", "/models", "", "https://api.openai.com/v1/models"),
        ("https://api.openai.com/v1", "", "", "https://api.openai.com/v1"),
        ("https://api.openai.com/v1", "models", "limit=2", "https://api.openai.com/v1/models?limit=2"),
    ],
)
def test_build_target_url(base, path, query, expected):
    assert build_target_url(base, path, query) == expected


def test_filter_response_headers():
    headers = httpx.Headers(
        {
            "Content-Type": "application/json",
            "Content-Length": "12",
            "Content-Encoding": "gzip",
            "Access-Control-Allow-Origin": "*",
            "OpenAI-Request-ID": "req_1",
        }
    )
    
    assert filter_response_headers(headers) == {
        "content-type": "application/json",
        "openai-request-id": "req_1",
    }
