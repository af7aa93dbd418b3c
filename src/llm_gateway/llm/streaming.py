"""
Server-sent event parsing for streamed chat completions.

OpenAI-compatible APIs stream `data: {json}` lines separated by blank lines
and finish with `data: [DONE]`. The helpers here are async generators: the
consumer pulls fragments at its own pace, and the HTTP response that feeds
them is owned (and released) by the caller's `async with` block.
"""

import json
from typing import Any, AsyncIterator

import structlog

from llm_gateway.exceptions import LLMClientError


logger = structlog.get_logger(__name__)

DONE_SENTINEL = "[DONE]"


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield the payload of each `data:` line until `[DONE]` or end of input.
    
    Comment lines (":"), blank separators and non-data fields (event:, id:,
    retry:) are skipped.
    """
    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line or line.startswith(":"):
            continue
        if not line.startswith("data:"):
            continue
        
        data = line[len("data:"):]
        if data.startswith(" "):
            data = data[1:]
        
        if data.strip() == DONE_SENTINEL:
            return
        yield data


def extract_delta_content(event: dict[str, Any]) -> str:
    """Return choices[0].delta.content of a chunk event, or "" when absent."""
    choices = event.get("choices") or []
    if not choices:
        return ""
    delta = choices[0].get("delta") or {}
    return delta.get("content") or ""


async def iter_content_deltas(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield non-empty content fragments from a chat-completion event stream.
    
    Raises:
        LLMClientError: The provider reported an error inside the stream
    """
    async for data in iter_sse_data(lines):
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed stream event", data=data[:200])
            continue
        
        if isinstance(event, dict) and event.get("error"):
            error = event["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LLMClientError(
                f"Provider reported a stream error: {message}",
                details={"error": error},
            )
        
        content = extract_delta_content(event) if isinstance(event, dict) else ""
        if content:
            yield content
