"""Ingestion pipeline: validate, hash, append, aggregate, commit.

One incoming envelope moves through

    Received -> Validated -> Hashed -> Appended -> (Aggregated | Skipped) -> Committed

as a single store ``upsert``, so the append and the statistics recompute are
committed together or not at all. A validation failure goes straight to
Rejected without touching the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from vrsense.core.crypto.paillier import CryptoError
from vrsense.core.integrity.verifier import compute_hash
from vrsense.core.storage.models import EncryptedSample, SessionRecord, SessionSummary
from vrsense.core.storage.repository import SessionStore, StoreError
from vrsense.domains.vr_therapy.aggregation import recompute
from vrsense.domains.vr_therapy.validation import SampleEnvelope, ValidationError, parse_envelope

logger = logging.getLogger(__name__)

ErrorKind = Literal["validation", "store"]

INTERNAL_ERROR = "Internal server error"


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one ``submit`` call."""

    accepted: bool
    sample_count: int | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"accepted": self.accepted}
        if self.sample_count is not None:
            payload["sampleCount"] = self.sample_count
        if self.error is not None:
            payload["error"] = self.error
        return payload


class IngestionPipeline:
    """Transport-agnostic entry points for sample ingestion and queries.

    Usage::

        pipeline = IngestionPipeline(store)
        result = pipeline.submit(envelope)
        record = pipeline.fetch_session("s1")
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store

    def submit(self, envelope: Any) -> SubmitResult:
        """Ingest one encrypted sample envelope.

        Never raises for expected failures: an invalid envelope comes back
        as a rejected result with its reason, a store failure as a rejected
        result with a generic internal error. A stored ciphertext that cannot
        be aggregated leaves the statistics as they were.
        """
        try:
            parsed = parse_envelope(envelope)
        except ValidationError as exc:
            logger.warning("Rejected envelope: %s", exc.reason)
            return SubmitResult(accepted=False, error=exc.reason, error_kind="validation")

        sample = EncryptedSample(
            timestamp=parsed.timestamp,
            encrypted_data=parsed.encrypted_data,
            integrity_hash=compute_hash(parsed.encrypted_data),
        )

        try:
            record = self._store.upsert(
                parsed.session_id, lambda current: self._append(current, parsed, sample)
            )
        except StoreError:
            logger.exception("Store failure while ingesting into session %s", parsed.session_id)
            return SubmitResult(accepted=False, error=INTERNAL_ERROR, error_kind="store")

        logger.info(
            "Stored encrypted sample #%d for session %s",
            len(record.samples),
            record.session_id,
        )
        return SubmitResult(accepted=True, sample_count=len(record.samples))

    @staticmethod
    def _append(
        current: SessionRecord | None,
        parsed: SampleEnvelope,
        sample: EncryptedSample,
    ) -> SessionRecord:
        if current is None:
            current = SessionRecord(
                session_id=parsed.session_id,
                start_time=parsed.timestamp,
                public_key=parsed.public_key,
            )
            logger.info("New session created: %s", parsed.session_id)
        elif current.public_key != parsed.public_key:
            logger.warning(
                "Sample for session %s carries a different public key; keeping the session key",
                parsed.session_id,
            )

        updated = current.with_sample(sample)
        try:
            statistics = recompute(updated)
        except CryptoError as exc:
            # The sample is still stored; only the recompute is skipped.
            logger.warning(
                "Statistics not updated for session %s: %s", parsed.session_id, exc
            )
            statistics = None
        if statistics is not None:
            updated.statistics = statistics
        return updated

    def fetch_session(self, session_id: str) -> SessionRecord | None:
        """Return the stored session, or None if it was never seen.

        Raises:
            StoreError: If the backing document cannot be read.
        """
        return self._store.get(session_id)

    def list_sessions(self) -> list[SessionSummary]:
        """Summaries of every stored session.

        Raises:
            StoreError: If the backing document cannot be read.
        """
        return self._store.list_summaries()
