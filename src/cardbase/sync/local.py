"""Local snapshot store backed by DuckDB.

Every :meth:`LocalSnapshotStore.save` appends a row; :meth:`load` returns the
newest one.  Older rows are kept as history until :meth:`prune` drops them.

Usage::

    with LocalSnapshotStore("~/.cardbase/snapshots.duckdb") as local:
        local.save(session.snapshot().to_json())
        df = local.history()     # polars DataFrame: seq, root, timestamp, cards
"""

from __future__ import annotations

import json
from pathlib import Path

import duckdb
import polars as pl

from cardbase.errors import SnapshotError


class LocalSnapshotStore:
    """Append-only snapshot table in an in-memory or on-disk DuckDB database."""

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self._db_path = str(db_path) if str(db_path) == ":memory:" else str(Path(db_path).expanduser())
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Internal setup
    # ------------------------------------------------------------------

    def _ensure_schema(self) -> None:
        self.conn.execute("CREATE SEQUENCE IF NOT EXISTS snapshot_seq START 1")
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                seq        BIGINT  DEFAULT nextval('snapshot_seq') PRIMARY KEY,
                root       VARCHAR NOT NULL,
                timestamp  BIGINT  NOT NULL,
                cards      INTEGER NOT NULL,
                payload    VARCHAR NOT NULL,
                saved_at   TIMESTAMPTZ DEFAULT now()
            )
        """)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save(self, payload: str) -> None:
        try:
            data = json.loads(payload)
            root, timestamp, cards = data["root"], int(data["timestamp"]), len(data["db"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"refusing to store malformed snapshot: {exc}") from exc
        self.conn.execute(
            "INSERT INTO snapshots (root, timestamp, cards, payload) VALUES (?, ?, ?, ?)",
            [root, timestamp, cards, payload],
        )

    def load(self) -> str | None:
        row = self.conn.execute("SELECT payload FROM snapshots ORDER BY seq DESC LIMIT 1").fetchone()
        return None if row is None else row[0]

    def history(self) -> pl.DataFrame:
        """Return stored snapshot metadata, newest first."""
        return self.conn.execute(
            "SELECT seq, root, timestamp, cards FROM snapshots ORDER BY seq DESC"
        ).pl()

    def prune(self, keep: int = 10) -> int:
        """Delete all but the newest *keep* snapshots; return how many were dropped."""
        before = self.conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()[0]
        self.conn.execute(
            f"""
            DELETE FROM snapshots
            WHERE seq NOT IN (SELECT seq FROM snapshots ORDER BY seq DESC LIMIT {int(keep)})
            """
        )
        after = self.conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()[0]
        return before - after

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "LocalSnapshotStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
