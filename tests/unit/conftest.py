"""Unit test fixtures (mocks and stubs).

Provides recording fakes for testing without network access or real sleeps.
"""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture
def recorded_sleeps():
    """Patch the retry engine's asyncio.sleep and record every backoff delay.
    
    Yields the list of delays (seconds), in order.
    """
    delays: list[float] = []
    
    async def _record(delay, *args, **kwargs):
        delays.append(delay)
    
    with patch("llm_gateway.retry.engine.asyncio.sleep", new=AsyncMock(side_effect=_record)):
        yield delays
