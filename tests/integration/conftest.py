"""Integration test fixtures.

Integration tests run the relay on a real loopback socket (port 0) and talk
to it over HTTP. Upstream providers are always mocked.
"""

import socket

import pytest


@pytest.fixture
def occupied_port():
    """A loopback port held by a listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()
