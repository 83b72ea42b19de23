"""Encrypted running statistics over a session's sample history."""

from __future__ import annotations

import logging

from vrsense.core.crypto.paillier import homomorphic_sum
from vrsense.core.integrity.verifier import filter_verified
from vrsense.core.storage.models import (
    EncryptedAverageResult,
    SessionRecord,
    SessionStatistics,
)

logger = logging.getLogger(__name__)

# Statistics are only produced once at least this many samples verify.
MIN_VERIFIED_SAMPLES = 2


def recompute(session: SessionRecord) -> SessionStatistics | None:
    """Recompute encrypted heart-rate statistics for ``session``.

    Only integrity-verified samples are folded. With fewer than
    ``MIN_VERIFIED_SAMPLES`` verified samples this returns None, and callers
    keep whatever statistics the session already has.

    The result holds the encrypted sum and the number of ciphertexts summed.
    The caller must decrypt ``sum`` and then divide by ``count``.

    Raises:
        CryptoError: If the session key or a stored ciphertext is malformed.
    """
    report = filter_verified(session.samples, session_id=session.session_id)
    if report.verified_count < MIN_VERIFIED_SAMPLES:
        logger.debug(
            "Session %s has %d verified samples; skipping recompute",
            session.session_id,
            report.verified_count,
        )
        return None

    heart_rates = [s.encrypted_data.get("heartRate") for s in report.verified]
    encrypted_sum = homomorphic_sum(heart_rates, session.public_key)

    logger.info(
        "Computed encrypted statistics for session %s (verified=%d, excluded=%d)",
        session.session_id,
        report.verified_count,
        len(report.mismatches),
    )
    return SessionStatistics(
        sample_count=report.verified_count,
        encrypted_avg_heart_rate=EncryptedAverageResult(sum=encrypted_sum, count=len(heart_rates)),
        last_updated=session.samples[-1].timestamp,
    )
