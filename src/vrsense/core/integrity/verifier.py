"""Integrity hashing for stored ciphertext samples.

Each sample is stamped at ingestion with a SHA-256 digest of the canonical
JSON of its four ciphertext fields. Before aggregation the stored history is
re-verified and any sample whose digest no longer matches is left out of the
statistics (it stays in the history for audit).

This is a data-hygiene check, not an authentication code. It detects
corruption of the stored document between ingestion and aggregation. Anyone
who controls the ciphertext fields can produce a matching hash, so a forged
but self-consistent sample passes.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from vrsense.core.storage.models import CIPHERTEXT_FIELDS, EncryptedSample

logger = logging.getLogger(__name__)


def canonical_form(encrypted_data: Mapping[str, str]) -> str:
    """Canonical JSON over the ciphertext fields.

    Keys are sorted (alpha, beta, gamma, heartRate) with compact separators,
    which matches ``JSON.stringify`` of the same mapping in that key order.
    Fields outside ``CIPHERTEXT_FIELDS`` are not bound by the hash.
    """
    bound = {name: encrypted_data.get(name) for name in CIPHERTEXT_FIELDS}
    return json.dumps(bound, sort_keys=True, separators=(",", ":"))


def compute_hash(encrypted_data: Mapping[str, str]) -> str:
    """Hex-encoded SHA-256 digest of ``canonical_form(encrypted_data)``."""
    return hashlib.sha256(canonical_form(encrypted_data).encode("utf-8")).hexdigest()


def verify(sample: EncryptedSample) -> bool:
    """Return True if the stored digest still matches the ciphertext fields."""
    if not sample.encrypted_data or not sample.integrity_hash:
        return False
    return compute_hash(sample.encrypted_data) == sample.integrity_hash


# ---------------------------------------------------------------------------
# History filtering
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IntegrityMismatch:
    """A stored sample whose digest no longer matches its ciphertexts."""

    index: int
    timestamp: int | None
    stored_hash: str
    computed_hash: str


@dataclass
class IntegrityReport:
    """Outcome of re-verifying a sample history."""

    verified: list[EncryptedSample] = field(default_factory=list)
    mismatches: list[IntegrityMismatch] = field(default_factory=list)

    @property
    def verified_count(self) -> int:
        return len(self.verified)


def filter_verified(samples: Iterable[EncryptedSample], *, session_id: str = "") -> IntegrityReport:
    """Split a history into verified samples and integrity mismatches.

    Mismatches are logged, never raised: a corrupted sample only drops out of
    aggregation.
    """
    report = IntegrityReport()
    for index, sample in enumerate(samples):
        if verify(sample):
            report.verified.append(sample)
            continue

        computed = compute_hash(sample.encrypted_data) if sample.encrypted_data else ""
        mismatch = IntegrityMismatch(
            index=index,
            timestamp=sample.timestamp,
            stored_hash=sample.integrity_hash,
            computed_hash=computed,
        )
        report.mismatches.append(mismatch)
        logger.warning(
            "Integrity mismatch in session %s at sample #%d (timestamp=%s); excluded from aggregation",
            session_id or "?",
            index,
            sample.timestamp,
        )
    return report
