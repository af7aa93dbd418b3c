"""
Process entry point for the proxy relay.

    python -m llm_gateway.main
    llm-gateway-proxy

Reads Settings from the environment, configures logging and runs the relay
until SIGINT/SIGTERM.
"""

import asyncio

import structlog

from llm_gateway.config import Settings, settings
from llm_gateway.logging_config import configure_logging
from llm_gateway.proxy.models import ProxyConfig
from llm_gateway.proxy.server import ProxyRelay

logger = structlog.get_logger(__name__)


def build_relay(app_settings: Settings) -> ProxyRelay:
    """Construct a relay from application settings. Does not bind."""
    return ProxyRelay(ProxyConfig.from_settings(app_settings))


async def serve(app_settings: Settings) -> None:
    """Start the relay and block until it shuts down."""
    relay = build_relay(app_settings)
    logger.info(
        "Application startup",
        version=app_settings.APP_VERSION,
        environment=app_settings.ENVIRONMENT,
        host=app_settings.PROXY_HOST,
        port=app_settings.PROXY_PORT,
        cors=app_settings.PROXY_ENABLE_CORS,
    )
    await relay.start()
    try:
        await relay.wait_closed()
    finally:
        await relay.stop()
        logger.info("Application shutdown complete")


def run() -> None:
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run()
