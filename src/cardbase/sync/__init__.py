"""Snapshot persistence backends."""

from cardbase.sync.base import SnapshotBackend
from cardbase.sync.cloudflare import CloudflareWorkerClient
from cardbase.sync.local import LocalSnapshotStore
from cardbase.sync.manager import SyncManager

__all__ = ["SnapshotBackend", "CloudflareWorkerClient", "LocalSnapshotStore", "SyncManager"]
