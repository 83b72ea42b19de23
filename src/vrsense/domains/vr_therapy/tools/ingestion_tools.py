"""MCP tools for encrypted sample ingestion and retrieval.

The server never holds a private key: every tool returns ciphertexts exactly
as stored or as computed homomorphically. Decryption happens client-side.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from vrsense.core.storage.repository import StoreError
from vrsense.domains.vr_therapy.demo import demo_homomorphic_op
from vrsense.domains.vr_therapy.pipeline import INTERNAL_ERROR

if TYPE_CHECKING:
    from vrsense.domains.vr_therapy.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


def register_ingestion_tools(
    mcp: FastMCP,
    pipeline: IngestionPipeline,
) -> None:
    """Register sample ingestion, query and demo tools on the MCP server."""

    @mcp.tool
    async def submit_encrypted_sample(
        ctx: Context,
        sessionId: str,
        timestamp: int,
        encryptedData: dict[str, Any],
        publicKey: dict[str, Any],
    ) -> str:
        """Store one Paillier-encrypted sensor sample and update session statistics.

        Args:
            sessionId: Client-chosen session identifier.
            timestamp: Client clock timestamp of the reading.
            encryptedData: Ciphertexts for alpha, beta, gamma and heartRate as decimal strings.
            publicKey: Paillier public key {n, g} as decimal strings.
        """
        envelope = {
            "sessionId": sessionId,
            "timestamp": timestamp,
            "encryptedData": encryptedData,
            "publicKey": publicKey,
        }
        result = await asyncio.to_thread(pipeline.submit, envelope)
        return json.dumps(result.to_dict())

    @mcp.tool
    async def get_encrypted_session(ctx: Context, session_id: str) -> str:
        """Return the full encrypted history and statistics of a session.

        Args:
            session_id: The session identifier used at submission.
        """
        try:
            record = await asyncio.to_thread(pipeline.fetch_session, session_id)
        except StoreError:
            logger.exception("Store failure while reading session %s", session_id)
            return json.dumps({"status": "error", "message": INTERNAL_ERROR})

        if record is None:
            return json.dumps({
                "status": "not_found",
                "session_id": session_id,
                "message": "Session not found",
            })
        return json.dumps({"status": "ok", "data": record.to_dict()})

    @mcp.tool
    async def list_sessions(ctx: Context) -> str:
        """List stored sessions with their start time and sample count."""
        try:
            summaries = await asyncio.to_thread(pipeline.list_sessions)
        except StoreError:
            logger.exception("Store failure while listing sessions")
            return json.dumps({"status": "error", "message": INTERNAL_ERROR})

        return json.dumps({
            "status": "ok",
            "count": len(summaries),
            "sessions": [s.to_dict() for s in summaries],
        })

    @mcp.tool
    async def homomorphic_demo(
        ctx: Context,
        operation: str,
        encryptedValues: list[str],
        publicKey: dict[str, Any],
        scalar: str | None = None,
    ) -> str:
        """Run a homomorphic operation on ciphertexts without storing anything.

        Args:
            operation: 'add', 'average' or 'multiply'.
            encryptedValues: Ciphertexts as decimal strings.
            publicKey: Paillier public key {n, g}.
            scalar: Integer multiplier (decimal string), required for 'multiply'.
        """
        result = demo_homomorphic_op(operation, encryptedValues, publicKey, scalar)
        return json.dumps(result.to_dict())
