"""
FastAPI exception handlers for structured error responses.

Maps relay exceptions to HTTP status codes so that no request fails by
dropping the connection.
"""

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

from llm_gateway.exceptions import (
    ProxyAuthError,
    UnknownProviderError,
    UpstreamTransportError,
)

logger = structlog.get_logger(__name__)


async def proxy_auth_error_handler(request: Request, exc: ProxyAuthError) -> JSONResponse:
    """
    Handle missing/malformed Authorization.
    
    Maps to 401 Unauthorized. Raised before any upstream call.
    """
    logger.warning("Rejected proxy request without bearer token", path=request.url.path)
    
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": exc.message},
    )


async def unknown_provider_handler(request: Request, exc: UnknownProviderError) -> JSONResponse:
    """Maps an unconfigured /proxy/<provider> prefix to 404 Not Found."""
    logger.warning("Unknown proxy provider", path=request.url.path, **exc.details)
    
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Unknown provider", "message": exc.message},
    )


async def upstream_transport_error_handler(
    request: Request, exc: UpstreamTransportError
) -> JSONResponse:
    """
    Handle failures reaching the upstream provider.
    
    Maps to 500 with the {error, message} envelope.
    """
    logger.error("Proxy request failed", error=exc.message, **exc.details)
    
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Proxy request failed", "message": exc.message},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.
    
    Maps to 500 Internal Server Error.
    """
    logger.exception("Proxy server error", error_type=type(exc).__name__)
    
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal proxy server error", "message": str(exc)},
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ProxyAuthError: proxy_auth_error_handler,
    UnknownProviderError: unknown_provider_handler,
    UpstreamTransportError: upstream_transport_error_handler,
    Exception: generic_error_handler,
}
