"""Data models for the encrypted session store.

Every ciphertext and key component is an arbitrary-precision integer. On the
wire and on disk they are decimal strings; ``to_dict``/``from_dict`` convert
between these dataclasses and the persisted camelCase document form.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from typing import Any

# Ciphertexts under keys of ~7000 bits and up exceed the default 4300-digit
# int/str conversion limit.
sys.set_int_max_str_digits(0)

# Ciphertext fields bound by the integrity hash, in canonical order.
CIPHERTEXT_FIELDS: tuple[str, ...] = ("alpha", "beta", "gamma", "heartRate")


@dataclass(frozen=True)
class PublicKey:
    """Paillier public key (modulus ``n`` and generator ``g``)."""

    n: int
    g: int

    def to_dict(self) -> dict[str, str]:
        return {"n": str(self.n), "g": str(self.g)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublicKey:
        return cls(n=int(data["n"]), g=int(data["g"]))


@dataclass(frozen=True)
class EncryptedSample:
    """A single stored sensor reading.

    ``encrypted_data`` maps each of ``CIPHERTEXT_FIELDS`` to a decimal-string
    ciphertext. ``integrity_hash`` is stamped by the server at ingestion.
    """

    timestamp: int
    encrypted_data: dict[str, str]
    integrity_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "encryptedData": dict(self.encrypted_data),
            "integrityHash": self.integrity_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EncryptedSample:
        return cls(
            timestamp=data.get("timestamp"),
            encrypted_data=dict(data.get("encryptedData") or {}),
            integrity_hash=data.get("integrityHash", ""),
        )


@dataclass(frozen=True)
class EncryptedAverageResult:
    """Encrypted sum of a field plus the number of ciphertexts folded into it.

    The server never divides: decrypt ``sum`` client-side, then divide by
    ``count``.
    """

    sum: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"sum": self.sum, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EncryptedAverageResult:
        return cls(sum=str(data["sum"]), count=int(data["count"]))


@dataclass(frozen=True)
class SessionStatistics:
    """Running statistics over the integrity-verified samples of a session."""

    sample_count: int
    encrypted_avg_heart_rate: EncryptedAverageResult
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sampleCount": self.sample_count,
            "encryptedAvgHeartRate": self.encrypted_avg_heart_rate.to_dict(),
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionStatistics:
        return cls(
            sample_count=int(data["sampleCount"]),
            encrypted_avg_heart_rate=EncryptedAverageResult.from_dict(
                data["encryptedAvgHeartRate"]
            ),
            last_updated=data.get("lastUpdated"),
        )


@dataclass
class SessionRecord:
    """All encrypted history for one client session.

    ``samples`` is append-only in arrival order. ``start_time`` and
    ``public_key`` come from the first sample and never change.
    """

    session_id: str
    start_time: int
    public_key: PublicKey
    samples: list[EncryptedSample] = field(default_factory=list)
    statistics: SessionStatistics | None = None

    def with_sample(self, sample: EncryptedSample) -> SessionRecord:
        """Return a copy with ``sample`` appended; the original is not mutated."""
        return replace(self, samples=[*self.samples, sample])

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "publicKey": self.public_key.to_dict(),
            "samples": [s.to_dict() for s in self.samples],
            "statistics": self.statistics.to_dict() if self.statistics else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        stats = data.get("statistics")
        return cls(
            session_id=data["sessionId"],
            start_time=data.get("startTime"),
            public_key=PublicKey.from_dict(data["publicKey"]),
            samples=[EncryptedSample.from_dict(s) for s in data.get("samples", [])],
            statistics=SessionStatistics.from_dict(stats) if stats else None,
        )


@dataclass(frozen=True)
class SessionSummary:
    """Listing entry for a stored session."""

    session_id: str
    start_time: int
    sample_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "sampleCount": self.sample_count,
        }
