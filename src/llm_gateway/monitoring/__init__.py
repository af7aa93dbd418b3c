"""Monitoring and metrics instrumentation for LLM Gateway.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from llm_gateway.monitoring.metrics import (
    llm_latency_seconds,
    llm_requests_total,
    llm_tokens_total,
    proxy_requests_total,
    proxy_upstream_errors_total,
    retries_total,
)

__all__ = [
    "retries_total",
    "llm_requests_total",
    "llm_latency_seconds",
    "llm_tokens_total",
    "proxy_requests_total",
    "proxy_upstream_errors_total",
]
