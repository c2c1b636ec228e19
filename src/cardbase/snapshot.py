"""Snapshot: the persisted form of a card database.

A snapshot is ``{"db": {...cards...}, "root": <id>, "timestamp": <ms>}``.
The timestamp records when the snapshot was taken, not when the store was
last changed.

Older snapshots kept each note's links as two separate Index cards named
``<id>-outgoing`` and ``<id>-incoming``; :meth:`Snapshot.from_dict` folds
those into the owning notes.
"""

from __future__ import annotations

import copy
import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cardbase.cards import Card, Index, LinkView, Note, card_from_dict
from cardbase.errors import SnapshotError

if TYPE_CHECKING:
    from cardbase.store import CardStore


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class Snapshot:
    db: dict[str, Card]
    root: str
    timestamp: int

    @classmethod
    def capture(cls, store: "CardStore", root: str) -> "Snapshot":
        """Deep-copy *store* and stamp it with the current time."""
        return cls(db=copy.deepcopy(store.cards), root=root, timestamp=now_ms())

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "db": {card_id: card.to_dict() for card_id, card in self.db.items()},
            "root": self.root,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> "Snapshot":
        if not isinstance(data, dict):
            raise SnapshotError("snapshot must be a JSON object")
        try:
            raw_db = data["db"]
            root = data["root"]
            timestamp = int(data["timestamp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"incomplete snapshot: {exc}") from exc
        if not isinstance(raw_db, dict):
            raise SnapshotError("snapshot 'db' must be an object")

        try:
            db = {card_id: card_from_dict(raw) for card_id, raw in raw_db.items()}
        except (ValueError, TypeError, AttributeError) as exc:
            raise SnapshotError(f"bad card in snapshot: {exc}") from exc

        _fold_legacy_links(db)
        if not isinstance(db.get(root), Index):
            raise SnapshotError(f"snapshot root {root!r} is not an index")
        return cls(db=db, root=root, timestamp=timestamp)

    @classmethod
    def from_json(cls, text: str) -> "Snapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


def _fold_legacy_links(db: dict[str, Card]) -> None:
    for key in [k for k, card in db.items() if isinstance(card, Index)]:
        view = LinkView.parse(key)
        if view is None:
            continue
        owner = db.get(view.note_id)
        if not isinstance(owner, Note):
            continue
        links = owner.links(view.direction)
        if not links:
            links.extend(db[key].contents)  # type: ignore[union-attr]
        del db[key]


def choose_snapshot(local: Snapshot | None, remote: Snapshot | None) -> Snapshot | None:
    """Pick the snapshot to load: the newer one, with ties going to *remote*."""
    if local is None:
        return remote
    if remote is None:
        return local
    return remote if remote.timestamp >= local.timestamp else local
