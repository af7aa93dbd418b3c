"""
Unit tests for LLM Gateway.

Test individual components in isolation:
- Retry engine (attempt budget, backoff formula, jitter bounds, callbacks)
- Error classification (HTTP status and network fault codes)
- Provider adapter (wire format, streaming, classification, transport modes)
- Proxy relay routes (health, auth, forwarding, SSE, CORS, redaction)
- Orchestrator fan-out
"""
