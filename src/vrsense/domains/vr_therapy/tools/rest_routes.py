"""REST routes for headset clients, served next to the MCP endpoint.

Headset clients use these JSON endpoints instead of the MCP transport:

- ``POST /api/data``                 store an encrypted sample
- ``GET  /api/data/{session_id}``    fetch an encrypted session
- ``GET  /api/sessions``             list sessions
- ``GET  /api/test``                 liveness check
- ``POST /api/demo/homomorphic``     stateless homomorphic operation
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from vrsense.core.storage.repository import StoreError
from vrsense.domains.vr_therapy.demo import demo_homomorphic_op
from vrsense.domains.vr_therapy.pipeline import INTERNAL_ERROR

if TYPE_CHECKING:
    from vrsense.domains.vr_therapy.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR_KIND = {"validation": 400, "store": 500}


def _internal_error() -> JSONResponse:
    return JSONResponse({"success": False, "error": INTERNAL_ERROR}, status_code=500)


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


def register_rest_routes(mcp: FastMCP, pipeline: IngestionPipeline) -> None:
    """Mount the REST API on the server's HTTP app."""

    @mcp.custom_route("/api/data", methods=["POST"])
    async def post_data(request: Request) -> JSONResponse:
        envelope = await _json_body(request)
        if envelope is None:
            return JSONResponse({"success": False, "error": "Invalid JSON body"}, status_code=400)

        session_id = envelope.get("sessionId") if isinstance(envelope, dict) else None
        logger.info("Received encrypted data package (session=%s)", session_id)
        result = await asyncio.to_thread(pipeline.submit, envelope)
        if not result.accepted:
            status = _STATUS_BY_ERROR_KIND.get(result.error_kind or "validation", 400)
            return JSONResponse({"success": False, "error": result.error}, status_code=status)

        return JSONResponse({
            "success": True,
            "message": "Encrypted data received and stored",
            "sampleCount": result.sample_count,
        })

    @mcp.custom_route("/api/data/{session_id}", methods=["GET"])
    async def get_data(request: Request) -> JSONResponse:
        session_id = request.path_params["session_id"]
        try:
            record = await asyncio.to_thread(pipeline.fetch_session, session_id)
        except StoreError:
            logger.exception("Store failure while reading session %s", session_id)
            return _internal_error()

        if record is None:
            logger.info("Session not found: %s", session_id)
            return JSONResponse({"success": False, "error": "Session not found"}, status_code=404)

        logger.info("Returning encrypted session %s (%d samples)", session_id, len(record.samples))
        return JSONResponse({"success": True, "data": record.to_dict()})

    @mcp.custom_route("/api/sessions", methods=["GET"])
    async def get_sessions(request: Request) -> JSONResponse:
        try:
            summaries = await asyncio.to_thread(pipeline.list_sessions)
        except StoreError:
            logger.exception("Store failure while listing sessions")
            return _internal_error()

        logger.info("Returning list of %d sessions", len(summaries))
        return JSONResponse({"success": True, "sessions": [s.to_dict() for s in summaries]})

    @mcp.custom_route("/api/test", methods=["GET"])
    async def get_test(request: Request) -> JSONResponse:
        return JSONResponse({
            "success": True,
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @mcp.custom_route("/api/demo/homomorphic", methods=["POST"])
    async def post_demo(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if not isinstance(body, dict):
            return JSONResponse({"success": False, "error": "Invalid JSON body"}, status_code=400)

        result = demo_homomorphic_op(
            body.get("operation"),
            body.get("encryptedValues"),
            body.get("publicKey"),
            body.get("scalar"),
        )
        if not result.ok:
            return JSONResponse({"success": False, "error": result.error}, status_code=400)
        return JSONResponse({"success": True, "result": result.result})
