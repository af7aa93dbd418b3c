"""
Integration tests for LLM Gateway.

Test components together over real sockets:
- Proxy relay lifecycle (start on an ephemeral port, health, graceful stop)
- Adapter in proxy transport mode talking to a live relay (upstream mocked)
"""
