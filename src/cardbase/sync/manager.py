"""SyncManager: load the newest snapshot and push changes back out.

On startup :meth:`SyncManager.restore` reads the local and (optional) remote
snapshot and opens whichever is newer; a tie goes to the remote copy.
:meth:`SyncManager.save` writes the session to the local store and
:meth:`SyncManager.flush` uploads it when it has unsaved changes.
"""

from __future__ import annotations

import duckdb
import httpx
from loguru import logger

from cardbase.config import Settings
from cardbase.errors import SnapshotError
from cardbase.session import Session
from cardbase.snapshot import Snapshot, choose_snapshot
from cardbase.sync.base import SnapshotBackend

# Failures a backend may raise while reading or writing
BACKEND_ERRORS = (httpx.HTTPError, duckdb.Error, OSError)


class SyncManager:
    def __init__(self, local: SnapshotBackend, remote: SnapshotBackend | None = None) -> None:
        self.local = local
        self.remote = remote

    def _read(self, backend: SnapshotBackend | None, label: str) -> Snapshot | None:
        if backend is None:
            return None
        try:
            payload = backend.load()
        except BACKEND_ERRORS as exc:
            logger.error("Error fetching {} snapshot: {}", label, exc)
            return None
        if payload is None:
            return None
        try:
            return Snapshot.from_json(payload)
        except SnapshotError as exc:
            logger.warning("Ignoring unreadable {} snapshot: {}", label, exc)
            return None

    def restore(self, settings: Settings | None = None) -> Session:
        """Open the newest available snapshot, or a fresh session when there is none."""
        local = self._read(self.local, "local")
        remote = self._read(self.remote, "remote")
        chosen = choose_snapshot(local, remote)
        if chosen is None:
            logger.info("No snapshot found, starting empty")
            return Session(settings=settings)
        logger.info(
            "Loading {} snapshot from {}",
            "remote" if chosen is remote else "local",
            chosen.timestamp,
        )
        return Session.from_snapshot(chosen, settings=settings)

    def save(self, session: Session) -> None:
        """Write the session to the local store."""
        self.local.save(session.snapshot().to_json())

    def flush(self, session: Session) -> bool:
        """Upload *session* if it is dirty; return ``True`` on a successful upload.

        ``dirty`` is cleared before the upload and set again if it fails, so
        edits made meanwhile are not lost.
        """
        if self.remote is None or not session.dirty:
            return False
        session.dirty = False
        try:
            self.remote.save(session.snapshot().to_json())
        except BACKEND_ERRORS as exc:
            logger.error("Upload failed: {}", exc)
            session.dirty = True
            return False
        logger.info("Upload successful")
        return True
