"""Fernet encryption of the session document at rest.

Sample ciphertexts are already Paillier-encrypted by the client. Encrypting
the whole document additionally hides session ids, timestamps, public keys
and integrity hashes from anyone reading the file directly.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class DocumentEncryptor:
    """Encrypts and decrypts a JSON document using Fernet symmetric encryption.

    Usage::

        encryptor = DocumentEncryptor(key="...")
        token = encryptor.encrypt({"sessions": {}})
        document = encryptor.decrypt(token)  # {"sessions": {}}
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string. Generate with
                 ``DocumentEncryptor.generate_key()``.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, document: dict[str, Any]) -> str:
        """Serialize and encrypt ``document`` to a Fernet token string.

        Raises:
            EncryptionError: If serialization or encryption fails.
        """
        try:
            plaintext = json.dumps(document, separators=(",", ":")).encode("utf-8")
            return self._fernet.encrypt(plaintext).decode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc

    def decrypt(self, token: str) -> dict[str, Any]:
        """Decrypt a Fernet token string back to the JSON document.

        Raises:
            EncryptionError: If the token is invalid or decryption fails.
        """
        try:
            plaintext = self._fernet.decrypt(token.strip().encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(plaintext)
        except ValueError as exc:
            raise EncryptionError(f"Decrypted document is not valid JSON: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key (URL-safe base64, 32 bytes)."""
        return Fernet.generate_key().decode("utf-8")
