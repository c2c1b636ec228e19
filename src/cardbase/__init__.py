"""cardbase: a linked-card knowledge base with stemmed full-text search."""

from cardbase.cards import Direction, Index, LinkView, Note
from cardbase.config import Settings, load_settings
from cardbase.errors import (
    CardbaseError,
    CardNotFound,
    FormatStripError,
    IndexOutOfBounds,
    SnapshotError,
    TypeMismatch,
)
from cardbase.intents import Intent, dispatch
from cardbase.navigator import Mode, Navigator
from cardbase.search import Indexer, SearchIndex
from cardbase.session import Session
from cardbase.snapshot import Snapshot, choose_snapshot
from cardbase.store import CardStore

__all__ = [
    "CardStore",
    "CardbaseError",
    "CardNotFound",
    "Direction",
    "FormatStripError",
    "Index",
    "IndexOutOfBounds",
    "Indexer",
    "Intent",
    "LinkView",
    "Mode",
    "Navigator",
    "Note",
    "SearchIndex",
    "Session",
    "Settings",
    "Snapshot",
    "SnapshotError",
    "TypeMismatch",
    "choose_snapshot",
    "dispatch",
    "load_settings",
]
