"""Envelope validation for incoming encrypted sensor samples.

Envelopes come from untrusted headset clients. They are checked field by
field, in a fixed order, and only a fully valid envelope is turned into a
``SampleEnvelope``. The first failing check determines the reason returned to
the client.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from vrsense.core.crypto.paillier import CryptoError, parse_integer
from vrsense.core.storage.models import CIPHERTEXT_FIELDS, PublicKey


class ValidationError(Exception):
    """Raised when an envelope fails validation; ``str(exc)`` is the reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str | None = None


@dataclass(frozen=True)
class SampleEnvelope:
    """A validated submission, ready for hashing and storage."""

    session_id: str
    timestamp: int
    public_key: PublicKey
    encrypted_data: dict[str, str]


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _check(envelope: Any) -> str | None:
    """Return the first failing reason, or None if the envelope is valid."""
    if not isinstance(envelope, Mapping):
        return "Envelope must be a JSON object"

    session_id = envelope.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        return "Missing sessionId"

    if not _present(envelope.get("timestamp")):
        return "Missing timestamp"

    encrypted = envelope.get("encryptedData")
    if not isinstance(encrypted, Mapping):
        return "Missing encryptedData"

    public_key = envelope.get("publicKey")
    if (
        not isinstance(public_key, Mapping)
        or not _present(public_key.get("n"))
        or not _present(public_key.get("g"))
    ):
        return "Missing or invalid publicKey"

    for name in CIPHERTEXT_FIELDS:
        if not _present(encrypted.get(name)):
            return f"Missing encrypted field: {name}"

    for name in CIPHERTEXT_FIELDS:
        try:
            parse_integer(encrypted[name])
        except CryptoError:
            return f"Invalid encrypted value format: {name}"

    timestamp = envelope["timestamp"]
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        return "Invalid timestamp: must be an integer"

    try:
        n = parse_integer(public_key["n"])
        g = parse_integer(public_key["g"])
    except CryptoError:
        n = g = 0
    if n <= 0 or g <= 0:
        return "Invalid publicKey: n and g must be positive integers"

    return None


def validate(envelope: Any) -> ValidationResult:
    """Validate an envelope without constructing domain objects."""
    reason = _check(envelope)
    if reason is not None:
        return ValidationResult(ok=False, reason=reason)
    return ValidationResult(ok=True)


def parse_envelope(envelope: Any) -> SampleEnvelope:
    """Validate and convert a raw envelope into a ``SampleEnvelope``.

    Integer ciphertexts become decimal strings; string ciphertexts are kept
    verbatim. Fields other than the four ciphertexts are dropped.

    Raises:
        ValidationError: With the first failing reason.
    """
    reason = _check(envelope)
    if reason is not None:
        raise ValidationError(reason)

    encrypted = envelope["encryptedData"]
    public_key = envelope["publicKey"]
    return SampleEnvelope(
        session_id=envelope["sessionId"],
        timestamp=envelope["timestamp"],
        public_key=PublicKey(n=parse_integer(public_key["n"]), g=parse_integer(public_key["g"])),
        encrypted_data={name: str(encrypted[name]) for name in CIPHERTEXT_FIELDS},
    )
