"""FastAPI middleware for request tracing and logging."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from llm_gateway.proxy.error_handlers import generic_error_handler
from llm_gateway.proxy.redaction import sanitize_headers

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to trace and log every inbound request.
    
    Features:
    - Generates unique request_id (UUID4) for each request
    - Binds request_id to structlog context (appears in all logs)
    - Logs method, path and headers with credentials redacted
    - Adds X-Request-ID response header for client correlation
    - Turns unexpected errors into the JSON 500 envelope here, inside the
      CORS layer, so browser clients can read it
    """
    
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request with tracing context."""
        request_id = str(uuid.uuid4())
        
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        
        logger.info(
            f"Proxy request: {request.method} {request.url.path}",
            headers=sanitize_headers(request.headers),
            content_length=request.headers.get("content-length") if request.method != "GET" else None,
        )
        
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            
            response.headers["X-Request-ID"] = request_id
            return response
            
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                error_type=type(exc).__name__,
                duration_ms=round(duration_ms, 2),
            )
            response = await generic_error_handler(request, exc)
            response.headers["X-Request-ID"] = request_id
            return response
        
        finally:
            # Clear context after request (prevent leakage to other requests)
            structlog.contextvars.clear_contextvars()
