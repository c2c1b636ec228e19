"""Bootstrap: settings → logging → persistence backends → session."""

from __future__ import annotations

from pathlib import Path

from cardbase.config import Settings, load_settings
from cardbase.log import configure_logging
from cardbase.session import Session
from cardbase.sync.cloudflare import CloudflareWorkerClient
from cardbase.sync.local import LocalSnapshotStore
from cardbase.sync.manager import SyncManager


def open_sync(settings: Settings) -> SyncManager:
    """Build the local store and, when a worker URL is configured, the remote client."""
    local = LocalSnapshotStore(settings.db_path)
    remote = (
        CloudflareWorkerClient(settings.worker_url, api_token=settings.api_token)
        if settings.worker_url
        else None
    )
    return SyncManager(local, remote)


def open_session(config_path: Path | str | None = None) -> tuple[Session, SyncManager]:
    settings = load_settings(config_path)
    configure_logging(settings.log_level, settings.log_file or None)
    sync = open_sync(settings)
    return sync.restore(settings), sync
