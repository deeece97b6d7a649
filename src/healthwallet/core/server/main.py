"""Server entry point: ``python -m healthwallet.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from healthwallet.core.config.settings import get_settings
from healthwallet.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the HealthWallet MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.hw_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.hw_allow_insecure_bind and not _is_loopback_host(settings.hw_host):
        raise RuntimeError(
            "Refusing to bind the HealthWallet server to a non-loopback host without "
            "an auth layer. Set HW_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting HealthWallet Vitality server on %s:%d",
        settings.hw_host,
        settings.hw_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.hw_host,
        port=settings.hw_port,
    )


if __name__ == "__main__":
    run()
