"""Shared test fixtures for VR Sense tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from phe import paillier  # noqa: E402

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_FILE", ":memory:")
    monkeypatch.setenv("STORE_ENCRYPTION_KEY", "")


# ---------------------------------------------------------------------------
# Paillier keypair (test-only: the server never sees a private key)
# ---------------------------------------------------------------------------

_KEYPAIR: tuple[paillier.PaillierPublicKey, paillier.PaillierPrivateKey] | None = None


def _keypair() -> tuple[paillier.PaillierPublicKey, paillier.PaillierPrivateKey]:
    # Small modulus keeps the suite fast; generated once per run.
    global _KEYPAIR  # noqa: PLW0603
    if _KEYPAIR is None:
        _KEYPAIR = paillier.generate_paillier_keypair(n_length=512)
    return _KEYPAIR


@pytest.fixture
def keypair():
    return _keypair()


@pytest.fixture
def public_key(keypair) -> paillier.PaillierPublicKey:
    return keypair[0]


@pytest.fixture
def private_key(keypair) -> paillier.PaillierPrivateKey:
    return keypair[1]


@pytest.fixture
def public_key_dict(public_key) -> dict[str, str]:
    """Public key as a headset client sends it."""
    return {"n": str(public_key.n), "g": str(public_key.g)}


@pytest.fixture
def encrypt(public_key):
    """Encrypt a plaintext int to a decimal-string ciphertext."""

    def _encrypt(value: int) -> str:
        return str(public_key.raw_encrypt(value))

    return _encrypt


@pytest.fixture
def decrypt(private_key):
    """Decrypt a decimal-string ciphertext to its plaintext int (mod n)."""

    def _decrypt(ciphertext: str) -> int:
        return private_key.raw_decrypt(int(ciphertext))

    return _decrypt


@pytest.fixture
def make_envelope(encrypt, public_key_dict):
    """Build a valid submission envelope with encrypted readings."""

    def _make(
        session_id: str = "s1",
        timestamp: int = 1000,
        heart_rate: int = 72,
        alpha: int = 10,
        beta: int = 20,
        gamma: int = 30,
        **overrides: Any,
    ) -> dict[str, Any]:
        envelope: dict[str, Any] = {
            "sessionId": session_id,
            "timestamp": timestamp,
            "encryptedData": {
                "alpha": encrypt(alpha),
                "beta": encrypt(beta),
                "gamma": encrypt(gamma),
                "heartRate": encrypt(heart_rate),
            },
            "publicKey": dict(public_key_dict),
        }
        envelope.update(overrides)
        return envelope

    return _make


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def session_db():
    """Create an in-memory SessionDatabase for testing."""
    from vrsense.core.storage.database import SessionDatabase

    db = SessionDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def session_store(session_db):
    """Create a SessionStore backed by the in-memory document."""
    from vrsense.core.storage.repository import SessionStore

    return SessionStore(session_db)


@pytest.fixture
def pipeline(session_store):
    """Create an IngestionPipeline over the in-memory store."""
    from vrsense.domains.vr_therapy.pipeline import IngestionPipeline

    return IngestionPipeline(session_store)
