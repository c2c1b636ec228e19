"""Abstract snapshot backend protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SnapshotBackend(Protocol):
    """Common interface shared by all persistence backends.

    Implementations (local DuckDB file, Cloudflare Worker, …) store serialised
    :class:`~cardbase.snapshot.Snapshot` JSON so the app can swap backends
    without changing call sites.
    """

    def save(self, payload: str) -> None:
        """Store *payload* as the newest snapshot."""
        ...

    def load(self) -> str | None:
        """Return the most recently stored snapshot, or ``None`` when empty."""
        ...

    def close(self) -> None: ...
