"""Single-document persistence for the encrypted session store.

The whole store is one JSON document, ``{"sessions": {...}}``, read in full
and replaced in full on every commit. File replacement goes through a
temporary file and ``os.replace`` so a reader sees either the previous or the
new document, never a partial write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from vrsense.core.storage.encryption import DocumentEncryptor, EncryptionError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def empty_document() -> dict[str, Any]:
    return {"sessions": {}}


class DatabaseError(Exception):
    """Raised when the session document cannot be read or written."""


class SessionDatabase:
    """Backing resource for the session store.

    Supports both file-based and in-memory (`:memory:`) documents.
    In-memory mode still serializes on every write, so tests exercise the
    same round trip as the file.

    Usage::

        db = SessionDatabase("data/sessions.json")
        db.initialize()
        document = db.read_all()
        document["sessions"]["s1"] = {...}
        db.replace_all(document)
        db.close()
    """

    def __init__(self, path: str = MEMORY, encryptor: DocumentEncryptor | None = None) -> None:
        """Initialize database manager.

        Args:
            path: Path to the JSON document, or ":memory:".
            encryptor: Optional at-rest encryptor for the whole document.
        """
        self._path = path
        self._encryptor = encryptor
        self._memory: str | None = None
        self._initialized = False
        # Guards the in-memory buffer; file replacement is atomic on its own.
        self._io_lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_memory(self) -> bool:
        return self._path == MEMORY

    def _file(self) -> Path:
        return Path(self._path).expanduser()

    def initialize(self) -> None:
        """Ensure the document exists, creating an empty one if needed.

        For file-based documents, creates parent directories.
        Idempotent: safe to call multiple times.

        Raises:
            DatabaseError: If the document location cannot be prepared.
        """
        if self._initialized:
            return

        if self.is_memory:
            self._memory = self._serialize(empty_document())
        else:
            data_file = self._file()
            try:
                data_file.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise DatabaseError(f"Cannot create data directory: {exc}") from exc
            if not data_file.exists():
                self._initialized = True
                try:
                    self.replace_all(empty_document())
                except DatabaseError:
                    self._initialized = False
                    raise
                logger.info("Session document initialized: %s", data_file)

        self._initialized = True
        logger.info("Session database ready: %s", self._path)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise DatabaseError("Database not initialized. Call initialize() first.")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _serialize(self, document: dict[str, Any]) -> str:
        try:
            if self._encryptor is not None:
                return self._encryptor.encrypt(document)
            return json.dumps(document, indent=2)
        except (TypeError, ValueError, EncryptionError) as exc:
            raise DatabaseError(f"Cannot serialize session document: {exc}") from exc

    def _deserialize(self, raw: str) -> dict[str, Any]:
        try:
            if self._encryptor is not None:
                document = self._encryptor.decrypt(raw)
            else:
                document = json.loads(raw)
        except (ValueError, EncryptionError) as exc:
            raise DatabaseError(f"Session document is unreadable: {exc}") from exc

        if not isinstance(document, dict) or not isinstance(document.get("sessions"), dict):
            raise DatabaseError("Session document has no 'sessions' mapping")
        return document

    # ------------------------------------------------------------------
    # Read / replace
    # ------------------------------------------------------------------

    def read_all(self) -> dict[str, Any]:
        """Read and return the full document.

        Raises:
            DatabaseError: If the document cannot be read or parsed.
        """
        self._require_initialized()
        if self.is_memory:
            with self._io_lock:
                raw = self._memory
        else:
            try:
                raw = self._file().read_text(encoding="utf-8")
            except OSError as exc:
                raise DatabaseError(f"Cannot read session document: {exc}") from exc
        return self._deserialize(raw)

    def replace_all(self, document: dict[str, Any]) -> None:
        """Atomically replace the full document.

        On failure the previously committed document is left untouched.

        Raises:
            DatabaseError: If the document cannot be serialized or written.
        """
        self._require_initialized()
        raw = self._serialize(document)

        if self.is_memory:
            with self._io_lock:
                self._memory = raw
            return

        data_file = self._file()
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{data_file.name}.", suffix=".tmp", dir=data_file.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(raw)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, data_file)
            tmp_name = None
        except OSError as exc:
            raise DatabaseError(f"Cannot write session document: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary file %s", tmp_name)

    def close(self) -> None:
        """Release the document. In-memory contents are discarded."""
        if self._initialized:
            self._initialized = False
            self._memory = None
            logger.info("Session database closed")

    def __enter__(self) -> SessionDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
