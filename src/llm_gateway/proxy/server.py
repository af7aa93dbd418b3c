"""
Proxy relay server.

Builds the FastAPI application for the relay and manages its uvicorn
lifecycle in-process:

    relay = ProxyRelay(ProxyConfig(port=3000, allowed_origins=["https://app.example.com"]))
    await relay.start()   # resolves once listening, raises OSError on bind failure
    ...
    await relay.stop()    # graceful; in-flight requests finish; idempotent
"""

import asyncio
import socket
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from llm_gateway.proxy.error_handlers import EXCEPTION_HANDLERS
from llm_gateway.proxy.middleware import RequestLoggingMiddleware
from llm_gateway.proxy.models import ProxyConfig
from llm_gateway.proxy.routes import router

logger = structlog.get_logger(__name__)

CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-API-Key"]


class ProxyRelay:
    """
    Forwarding HTTP relay in front of upstream LLM provider APIs.

    The relay owns its FastAPI app and (unless one is injected) the
    upstream httpx.AsyncClient. It does not read the environment: the
    process bootstrapper passes a ProxyConfig.

    Attributes:
        config: Immutable relay configuration
        app: FastAPI application (usable with TestClient without start())
    """

    def __init__(
        self,
        config: ProxyConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the relay. Does not bind any socket.

        Args:
            config: Relay configuration
            http_client: Injected upstream client (not closed by the relay)
        """
        self.config = config
        self._http_client = http_client
        self._owns_client = http_client is None
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._socket: Optional[socket.socket] = None
        self.app = self._build_app()

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Upstream client, created on first use when not injected."""
        if self._http_client is None or (self._owns_client and self._http_client.is_closed):
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.upstream_timeout),
                follow_redirects=False,
            )
            self._owns_client = True
            logger.debug("Created upstream httpx AsyncClient")
        return self._http_client

    @property
    def port(self) -> int:
        """Bound port (resolves port=0 to the ephemeral port once started)."""
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self.config.port

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def _build_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            await self._close_http_client()

        app = FastAPI(
            title="LLM Provider Proxy",
            description="Forwarding relay for LLM provider APIs",
            version="0.1.0",
            lifespan=lifespan,
        )
        app.state.relay = self

        # Request logging (credentials redacted)
        app.add_middleware(RequestLoggingMiddleware)

        # CORS last so it wraps everything, including error responses
        if self.config.enable_cors:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self.config.allowed_origins,
                allow_credentials=True,
                allow_methods=CORS_ALLOWED_METHODS,
                allow_headers=CORS_ALLOWED_HEADERS,
            )

        for exc_class, handler in EXCEPTION_HANDLERS.items():
            app.add_exception_handler(exc_class, handler)

        app.include_router(router)

        if self.config.enable_metrics:
            Instrumentator().instrument(app).expose(app)

        return app

    async def _close_http_client(self) -> None:
        if self._owns_client and self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug("Closed upstream httpx AsyncClient")

    def _bind_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        """
        Bind the listener and start serving.

        Returns once the server is accepting connections.

        Raises:
            OSError: The port could not be bound
            RuntimeError: The server exited during startup
        """
        if self._server is not None:
            logger.debug("Proxy server already running", port=self.port)
            return

        try:
            sock = self._bind_socket()
        except OSError as e:
            logger.error("Proxy server error", error=str(e), host=self.config.host, port=self.config.port)
            raise

        server = uvicorn.Server(
            uvicorn.Config(
                self.app,
                log_config=None,
                access_log=False,
                lifespan="on",
            )
        )
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if serve_task.done():
                sock.close()
                error = serve_task.exception()
                logger.error("Proxy server failed to start", error=str(error) if error else None)
                raise RuntimeError("Proxy server exited during startup") from error
            await asyncio.sleep(0.01)

        self._server = server
        self._serve_task = serve_task
        self._socket = sock
        logger.info(f"Proxy server running on port {self.port}", host=self.config.host)

    async def wait_closed(self) -> None:
        """Block until the server exits (e.g. after SIGINT/SIGTERM)."""
        if self._serve_task is not None:
            await asyncio.shield(self._serve_task)

    async def stop(self) -> None:
        """
        Gracefully stop the server.

        In-flight requests are allowed to finish. Calling stop() when the
        relay is not running is a no-op.
        """
        server, serve_task, sock = self._server, self._serve_task, self._socket
        if server is None:
            return

        self._server = None
        self._serve_task = None

        server.should_exit = True
        if serve_task is not None:
            await serve_task
        if sock is not None:
            sock.close()
        self._socket = None

        await self._close_http_client()
        logger.info("Proxy server stopped")
