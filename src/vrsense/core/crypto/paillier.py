"""Paillier homomorphic operations over client-supplied public keys.

The server only ever holds public key material taken straight from a request
or a stored session. It combines ciphertexts without decrypting them:

* ``homomorphic_add``: Dec(add(c1, c2)) == Dec(c1) + Dec(c2) mod n
* ``homomorphic_multiply``: Dec(mul(c, k)) == k * Dec(c) mod n
* ``homomorphic_sum``: left fold of ``homomorphic_add``

Results are never re-randomized, so the same inputs always produce the same
ciphertext string. Paillier's homomorphic operations only involve ``n``; the
client's ``g`` is validated and carried alongside but is not needed for the
arithmetic (python-paillier fixes ``g = n + 1`` internally).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from phe import paillier

from vrsense.core.storage.models import PublicKey

logger = logging.getLogger(__name__)

Ciphertext = str | int


class CryptoError(Exception):
    """Raised when ciphertext or public key material is malformed."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_integer(value: Any, *, signed: bool = False) -> int:
    """Parse an arbitrary-precision integer from an ``int`` or decimal string.

    Only ASCII digits (with a leading ``-`` when ``signed``) are accepted;
    floats, booleans, whitespace and other bases are rejected.

    Raises:
        CryptoError: If ``value`` is not a valid integer encoding.
    """
    if isinstance(value, bool):
        raise CryptoError(f"Not an integer: {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        digits = value[1:] if signed and value.startswith("-") else value
        if not digits or not digits.isascii() or not digits.isdigit():
            raise CryptoError(f"Not a decimal integer string: {value[:32]!r}")
        try:
            number = int(value)
        except ValueError as exc:
            raise CryptoError(f"Cannot convert integer string: {exc}") from exc
    else:
        raise CryptoError(f"Expected int or decimal string, got {type(value).__name__}")

    if not signed and number < 0:
        raise CryptoError("Ciphertext must be non-negative")
    return number


def load_public_key(public_key: PublicKey | Mapping[str, Any] | None) -> paillier.PaillierPublicKey:
    """Reconstruct a python-paillier public key from stored or request material.

    Args:
        public_key: A ``PublicKey`` or a mapping with ``n`` and ``g``.

    Raises:
        CryptoError: If ``n`` or ``g`` is missing or not a positive integer.
    """
    if isinstance(public_key, PublicKey):
        n, g = public_key.n, public_key.g
    elif isinstance(public_key, Mapping):
        if public_key.get("n") is None or public_key.get("g") is None:
            raise CryptoError("Public key requires both n and g")
        n = parse_integer(public_key["n"])
        g = parse_integer(public_key["g"])
    else:
        raise CryptoError("Public key missing")

    if n <= 0 or g <= 0:
        raise CryptoError("Public key components must be positive integers")
    return paillier.PaillierPublicKey(n)


def _encrypted_number(pub: paillier.PaillierPublicKey, ciphertext: Ciphertext) -> paillier.EncryptedNumber:
    return paillier.EncryptedNumber(pub, parse_integer(ciphertext), 0)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def homomorphic_add(
    c1: Ciphertext,
    c2: Ciphertext,
    public_key: PublicKey | Mapping[str, Any],
) -> str:
    """Add two ciphertexts under ``public_key``; returns a decimal string.

    Raises:
        CryptoError: On malformed operands or key.
    """
    pub = load_public_key(public_key)
    try:
        result = _encrypted_number(pub, c1) + _encrypted_number(pub, c2)
        return str(result.ciphertext(be_secure=False))
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise CryptoError(f"Homomorphic addition failed: {exc}") from exc


def homomorphic_multiply(
    ciphertext: Ciphertext,
    scalar: int | str,
    public_key: PublicKey | Mapping[str, Any],
) -> str:
    """Multiply the plaintext under ``ciphertext`` by a plaintext integer.

    Any integer ``scalar`` is accepted. It is reduced modulo ``n`` first, so a
    negative ``k`` acts as ``n - |k|`` and ``Dec(result) == k * Dec(c) mod n``.

    Raises:
        CryptoError: On malformed operands or key.
    """
    pub = load_public_key(public_key)
    k = parse_integer(scalar, signed=True)
    c = parse_integer(ciphertext)
    # c^k mod n^2; python-paillier's encoded multiply caps |k| at n // 3.
    return str(pow(c, k % pub.n, pub.nsquare))


def homomorphic_sum(
    ciphertexts: Iterable[Ciphertext],
    public_key: PublicKey | Mapping[str, Any],
) -> str:
    """Fold ciphertexts left to right with homomorphic addition.

    The fold is seeded with the first ciphertext: there is no encrypted zero
    available without encrypting, and this module never encrypts.

    Raises:
        CryptoError: On an empty input or malformed operands.
    """
    pub = load_public_key(public_key)
    values = list(ciphertexts)
    if not values:
        raise CryptoError("Cannot sum an empty list of ciphertexts")

    try:
        total = _encrypted_number(pub, values[0])
        for value in values[1:]:
            total = total + _encrypted_number(pub, value)
        return str(total.ciphertext(be_secure=False))
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise CryptoError(f"Homomorphic sum failed: {exc}") from exc
