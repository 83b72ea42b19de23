"""Session store: atomic per-session read-modify-write over one JSON document.

Two locks cooperate:

* a keyed lock per session id, held for a whole ``upsert`` so concurrent
  writers to the same session are linearized (no lost updates);
* a document lock, held only while the full document is read and replaced,
  so writers to different sessions never overwrite each other's commits.

The mutator runs between the two document sections, outside the document
lock, so homomorphic aggregation for one session does not stall others.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from vrsense.core.storage.database import DatabaseError, SessionDatabase
from vrsense.core.storage.models import SessionRecord, SessionSummary

logger = logging.getLogger(__name__)

Mutator = Callable[[SessionRecord | None], SessionRecord]


class StoreError(Exception):
    """Raised when the session store cannot read or commit its document."""


class KeyedLock:
    """``threading.Lock`` per key, dropped once no thread holds or awaits it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> (lock, number of threads holding or waiting on it)
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key) or (threading.Lock(), 0)
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users == 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


class SessionStore:
    """Authoritative mapping from session id to ``SessionRecord``.

    Usage::

        db = SessionDatabase(":memory:")
        db.initialize()
        store = SessionStore(db)

        record = store.upsert("s1", lambda current: ...)
        store.get("s1")
        store.list_summaries()
    """

    def __init__(self, database: SessionDatabase) -> None:
        self._db = database
        self._session_locks = KeyedLock()
        self._document_lock = threading.Lock()

    def _read_document(self) -> dict[str, Any]:
        try:
            return self._db.read_all()
        except DatabaseError as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _decode(session_id: str, raw: dict[str, Any]) -> SessionRecord:
        try:
            return SessionRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Stored session {session_id!r} is malformed: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, session_id: str) -> SessionRecord | None:
        """Return the committed record for ``session_id``, or None if unknown.

        Raises:
            StoreError: If the backing document cannot be read.
        """
        raw = self._read_document()["sessions"].get(session_id)
        if raw is None:
            return None
        return self._decode(session_id, raw)

    def list_summaries(self) -> list[SessionSummary]:
        """Summaries of every stored session, in insertion order."""
        sessions = self._read_document()["sessions"]
        return [
            SessionSummary(
                session_id=session_id,
                start_time=raw.get("startTime"),
                sample_count=len(raw.get("samples", [])),
            )
            for session_id, raw in sessions.items()
        ]

    def count_sessions(self) -> int:
        """Return the number of stored sessions."""
        return len(self._read_document()["sessions"])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, session_id: str, mutator: Mutator) -> SessionRecord:
        """Atomically apply ``mutator`` to one session and commit the result.

        ``mutator`` receives the current record (None for an unseen session)
        and returns the record to store. Exceptions raised by the mutator
        propagate unchanged and nothing is committed.

        Raises:
            StoreError: If the document cannot be read or replaced. The
                previously committed document stays in place.
        """
        with self._session_locks.hold(session_id):
            with self._document_lock:
                raw = self._read_document()["sessions"].get(session_id)
            current = self._decode(session_id, raw) if raw is not None else None

            updated = mutator(current)
            if updated.session_id != session_id:
                raise StoreError(
                    f"Mutator returned record for {updated.session_id!r}, expected {session_id!r}"
                )

            with self._document_lock:
                document = self._read_document()
                document["sessions"][session_id] = updated.to_dict()
                try:
                    self._db.replace_all(document)
                except DatabaseError as exc:
                    logger.error("Commit failed for session %s: %s", session_id, exc)
                    raise StoreError(str(exc)) from exc

        logger.debug("Committed session %s (%d samples)", session_id, len(updated.samples))
        return updated
