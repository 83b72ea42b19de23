"""Stateless homomorphic operation demo, bypassing the session store.

Lets a client check its own encryption against the server's arithmetic:
encrypt some values, ask the server to add/average/multiply them, decrypt the
result locally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vrsense.core.crypto.paillier import (
    CryptoError,
    homomorphic_add,
    homomorphic_multiply,
    homomorphic_sum,
)
from vrsense.core.storage.models import EncryptedAverageResult

logger = logging.getLogger(__name__)

OPERATIONS = ("add", "average", "multiply")


@dataclass(frozen=True)
class DemoResult:
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return {"result": self.result}


def demo_homomorphic_op(
    operation: str,
    operands: list[Any] | None,
    public_key: Any,
    scalar: Any = None,
) -> DemoResult:
    """Run one homomorphic operation on client-supplied ciphertexts.

    Args:
        operation: 'add' (first two operands), 'average' (all operands, as
            ``{sum, count}``) or 'multiply' (first operand times ``scalar``).
        operands: Ciphertexts as decimal strings or ints.
        public_key: Mapping with ``n`` and ``g``.
        scalar: Plaintext integer multiplier, required for 'multiply'.
    """
    if operation not in OPERATIONS:
        return DemoResult(error="Invalid operation")
    if not isinstance(operands, list):
        return DemoResult(error="encryptedValues must be a list")

    try:
        if operation == "add":
            if len(operands) < 2:
                return DemoResult(error="Need at least 2 values for addition")
            return DemoResult(result=homomorphic_add(operands[0], operands[1], public_key))

        if operation == "average":
            if not operands:
                return DemoResult(error="Need at least 1 value for average")
            total = homomorphic_sum(operands, public_key)
            return DemoResult(result=EncryptedAverageResult(sum=total, count=len(operands)).to_dict())

        if scalar is None or scalar == "":
            return DemoResult(error="Scalar required for multiplication")
        if not operands:
            return DemoResult(error="Need at least 1 value for multiplication")
        return DemoResult(result=homomorphic_multiply(operands[0], scalar, public_key))
    except CryptoError as exc:
        logger.warning("Homomorphic %s demo failed: %s", operation, exc)
        return DemoResult(error=str(exc))
