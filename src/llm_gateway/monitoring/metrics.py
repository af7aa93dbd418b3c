"""Custom Prometheus metrics for LLM Gateway.

These metrics are exposed at /metrics endpoint of the proxy relay (when
PROMETHEUS_ENABLED) and should be scraped by Prometheus.
Alert rules should be configured for:
- retries_total (high retry rate indicates upstream instability)
- llm_requests_total with outcome="non_retriable" (client-side defects, bad keys)
- proxy_upstream_errors_total (relay cannot reach the provider)
"""

from prometheus_client import Counter, Histogram

# === Retry Metrics ===

retries_total = Counter(
    "llm_gateway_retries_total",
    "Total retry attempts scheduled by the retry engine",
    ["error_type"],
)
"""
Retries scheduled after a failed attempt.

Labels:
- error_type: class name of the error that triggered the retry

Alert thresholds:
- WARN: retry rate > 10% of total requests
- CRITICAL: retry rate > 30% of total requests
"""

# === LLM Performance Metrics ===

llm_requests_total = Counter(
    "llm_gateway_requests_total",
    "Total provider queries by provider, mode and outcome",
    ["provider", "mode", "outcome"],
)
"""
Provider queries.

Labels:
- provider: Provider name (e.g., OpenAI)
- mode: query (single-shot) or stream
- outcome: success, retriable, non_retriable (query); success, error (stream)
"""

llm_latency_seconds = Histogram(
    "llm_gateway_latency_seconds",
    "End-to-end query latency in seconds (including retries)",
    ["provider", "model"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Query latency histogram, measured by the wrapping layer around the retry loop.

Buckets optimized for hosted LLM inference (0.5s to 120s).
"""

llm_tokens_total = Counter(
    "llm_gateway_tokens_total",
    "Total tokens consumed by provider, model and type",
    ["provider", "model", "token_type"],
)
"""
Token consumption counter.

Labels:
- token_type: prompt (input tokens), completion (output tokens)
"""

# === Proxy Relay Metrics ===

proxy_requests_total = Counter(
    "llm_gateway_proxy_requests_total",
    "Requests forwarded by the proxy relay",
    ["provider", "status_code", "streaming"],
)

proxy_upstream_errors_total = Counter(
    "llm_gateway_proxy_upstream_errors_total",
    "Transport failures while contacting the upstream provider",
    ["provider", "error_type"],
)
