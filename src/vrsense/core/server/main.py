"""Command-line entry point for the VR Sense server.

Installed as the ``vrsense`` script; ``python -m vrsense.core.server.main``
works too. One port serves both MCP (Streamable HTTP) and the ``/api`` routes.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vrsense.core.config.settings import Settings, get_settings
from vrsense.core.server.app import create_app, http_middleware

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class InsecureBindError(RuntimeError):
    """Raised when asked to listen beyond loopback without an explicit opt-in."""


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def is_loopback(host: str) -> bool:
    """True for ``localhost`` and any loopback IPv4/IPv6 literal."""
    if host.lower() == "localhost":
        return True
    try:
        return ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def check_bind(settings: Settings) -> None:
    """Refuse a network-facing bind unless it was explicitly allowed.

    Raises:
        InsecureBindError: If the host is not loopback and
            ``VRSENSE_ALLOW_INSECURE_BIND`` is not set.
    """
    host = settings.vrsense_host
    if is_loopback(host):
        return
    if not settings.vrsense_allow_insecure_bind:
        raise InsecureBindError(
            f"{host} is not a loopback address and the API has no auth layer; "
            "set VRSENSE_ALLOW_INSECURE_BIND=true to listen on it anyway"
        )
    logger.warning("Listening on %s without authentication", host)


def run() -> None:
    settings = get_settings()
    configure_logging(settings.vrsense_log_level)
    check_bind(settings)

    mcp = create_app()
    logger.info(
        "VR Sense on http://%s:%d (MCP and /api); samples and statistics stay encrypted",
        settings.vrsense_host,
        settings.vrsense_port,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.vrsense_host,
        port=settings.vrsense_port,
        middleware=http_middleware(settings),
    )


if __name__ == "__main__":
    run()
