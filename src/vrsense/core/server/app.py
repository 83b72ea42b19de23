"""VR Sense encrypted aggregation server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from vrsense.core.config.settings import Settings, get_settings
from vrsense.core.storage.database import SessionDatabase
from vrsense.core.storage.encryption import DocumentEncryptor
from vrsense.core.storage.repository import SessionStore, StoreError
from vrsense.domains.vr_therapy.pipeline import IngestionPipeline
from vrsense.domains.vr_therapy.tools.ingestion_tools import register_ingestion_tools
from vrsense.domains.vr_therapy.tools.rest_routes import register_rest_routes

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    store_override: SessionStore | None = None,
) -> FastMCP:
    """Create and configure the VR Sense server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the session document (optionally encrypted at rest)
    3. Builds the session store and ingestion pipeline
    4. Registers MCP tools and REST routes

    Raises:
        EncryptionError: If STORE_ENCRYPTION_KEY is set but not a valid Fernet key.
        DatabaseError: If the session document cannot be created.
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "VR Sense",
        instructions=(
            "Privacy-preserving VR therapy backend. Stores Paillier-encrypted "
            "sensor samples per session and computes encrypted heart-rate "
            "statistics homomorphically. The server never decrypts; clients "
            "decrypt results with their own private key."
        ),
    )

    # --- Initialize session store ---
    if store_override is not None:
        store = store_override
    else:
        encryptor = None
        if settings.store_encryption_key:
            encryptor = DocumentEncryptor(settings.store_encryption_key)
        database = SessionDatabase(settings.data_file, encryptor=encryptor)
        database.initialize()
        store = SessionStore(database)
        logger.info(
            "Session store initialized: %s (encrypted at rest: %s)",
            settings.data_file,
            encryptor is not None,
        )

    pipeline = IngestionPipeline(store)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "VR Sense",
            "version": VERSION,
        }
        try:
            status["sessions_stored"] = store.count_sessions()
        except StoreError:
            logger.exception("Session store unreadable during health check")
            status["status"] = "degraded"
        return status

    register_ingestion_tools(server, pipeline)
    logger.info("Ingestion tools registered")

    # --- Register REST routes ---
    register_rest_routes(server, pipeline)
    logger.info("REST routes registered under /api")

    return server


def http_middleware(settings: Settings | None = None) -> list[Middleware]:
    """ASGI middleware for the HTTP transport.

    CORS lets browser and headset web clients on other origins reach the
    REST routes and the MCP endpoint.
    """
    settings = settings or get_settings()
    return [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.vrsense_cors_origins,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["mcp-session-id"],
        ),
    ]


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
