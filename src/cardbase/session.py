"""Session: the complete application state of one open card database.

A :class:`Session` bundles the card store, the navigator, the clipboard and
the search index, and is passed explicitly to everything that reads or
changes them (see :mod:`cardbase.intents`).

Every mutating method runs inside a transaction: the store and breadcrumbs
are checkpointed first, the checkpoint becomes an undo step on success, and
the session is rolled back to it if the edit raises part-way.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger

from cardbase.cards import Card, Direction, LinkView, Note, Ref
from cardbase.config import Settings
from cardbase.errors import FormatStripError
from cardbase.graph import collect_garbage
from cardbase.navigator import Frame, Mode, Navigator
from cardbase.search import SearchIndex
from cardbase.snapshot import Snapshot
from cardbase.store import CardStore


@dataclass
class _Checkpoint:
    cards: dict[str, Card]
    crumbs: list[Frame]


class Session:
    """Store + navigator + clipboard + search index for one database."""

    def __init__(
        self,
        store: CardStore | None = None,
        root: str | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store if store is not None else CardStore(copy_on_write=self.settings.copy_on_write)
        self.root = root if root is not None else self.store.new_index()
        self.navigator = Navigator(self.store, self.root)
        self.clipboard: list[str] = []
        self.search_index = SearchIndex(self.settings.weighting)
        #: Set by every mutation, cleared by whoever persists the session
        self.dirty = False
        self._undo: list[_Checkpoint] = []
        self._redo: list[_Checkpoint] = []
        self._depth = 0

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, *, settings: Settings | None = None) -> "Session":
        settings = settings or Settings()
        store = CardStore(copy.deepcopy(snapshot.db), copy_on_write=settings.copy_on_write)
        session = cls(store, snapshot.root, settings=settings)
        session.reindex()
        return session

    def snapshot(self) -> Snapshot:
        return Snapshot.capture(self.store, self.root)

    # ------------------------------------------------------------------
    # Shortcuts
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self.navigator.mode

    @property
    def focus(self) -> int:
        return self.navigator.focus

    @property
    def focused_id(self) -> str | None:
        return self.navigator.focused_id

    @property
    def contents(self) -> list[str]:
        return self.navigator.contents

    # ------------------------------------------------------------------
    # Transactions and history
    # ------------------------------------------------------------------

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(copy.deepcopy(self.store.cards), copy.deepcopy(self.navigator.crumbs))

    def _restore(self, checkpoint: _Checkpoint) -> None:
        before = self.store.cards
        self.store.cards = copy.deepcopy(checkpoint.cards)
        self.navigator.crumbs = copy.deepcopy(checkpoint.crumbs)
        self.navigator.drop_stale_forward()
        self.navigator.clamp()
        self._reindex_changed(before)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group edits into one undo step; roll them back if the block raises."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        checkpoint = self._checkpoint()
        self._depth = 1
        try:
            yield
        except BaseException:
            self._restore(checkpoint)
            raise
        finally:
            self._depth = 0
        self.navigator.clamp()
        self.dirty = True
        if self.settings.undo_depth:
            self._undo.append(checkpoint)
            del self._undo[: -self.settings.undo_depth]
        self._redo.clear()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self._checkpoint())
        self.navigator.end_selecting()
        self._restore(self._undo.pop())
        self.dirty = True
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._checkpoint())
        self.navigator.end_selecting()
        self._restore(self._redo.pop())
        self.dirty = True
        return True

    # ------------------------------------------------------------------
    # Card edits
    # ------------------------------------------------------------------

    def insert_after(self, position: int, card_id: str) -> None:
        """Insert *card_id* into the current sequence right after *position*."""
        with self.transaction():
            self.store.insert_after(self.navigator.ref, position, card_id)

    def remove(self, position: int) -> str:
        with self.transaction():
            return self.store.remove(self.navigator.ref, position)

    def new_note(self, contents: str = "") -> str:
        """Create a note below the focus, focus it and start editing it."""
        with self.transaction():
            card_id = self.store.new_note(contents)
            self.store.insert_after(self.navigator.ref, self.focus, card_id)
            self.navigator.focus += 1
            self.navigator.begin_editing()
        if contents:
            self._index_note(card_id, contents)
        return card_id

    def update_note(self, card_id: str, contents: str) -> None:
        """Replace a note's text and re-index it."""
        with self.transaction():
            self.store.update_note(card_id, contents)
        self._index_note(card_id, contents)

    # ------------------------------------------------------------------
    # Selection and clipboard
    # ------------------------------------------------------------------

    def _target_range(self) -> tuple[int, int] | None:
        if self.mode is Mode.SELECTING:
            return self.navigator.selection_range()
        if self.focus >= 0:
            return self.focus, self.focus
        return None

    def copy(self) -> None:
        """Replace the clipboard with the focused card or the selected range."""
        bounds = self._target_range()
        if bounds is None:
            return
        lower, upper = bounds
        self.clipboard = list(self.contents[lower : upper + 1])

    def remove_selection(self) -> list[str]:
        """Remove the focused card, or every selected card, and return their IDs."""
        bounds = self._target_range()
        if bounds is None:
            return []
        lower, upper = bounds
        removed: list[str] = []
        with self.transaction():
            # each removal shifts the rest of the range down onto ``lower``
            for _ in range(upper - lower + 1):
                removed.append(self.store.remove(self.navigator.ref, lower))
            if self.mode is Mode.SELECTING:
                self.navigator.end_selecting()
                self.navigator.focus = lower
            if self.focus == len(self.contents):
                self.navigator.focus -= 1
        return removed

    def cut(self) -> list[str]:
        self.copy()
        return self.remove_selection()

    def paste(self) -> None:
        """Insert the clipboard right after the focus, keeping clipboard order."""
        if not self.clipboard:
            return
        with self.transaction():
            for offset, card_id in enumerate(self.clipboard):
                self.store.insert_after(self.navigator.ref, self.focus + offset, card_id)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def enter(self, ref: Ref) -> None:
        self.navigator.enter(ref)

    def enter_links(self, direction: Direction) -> bool:
        """Browse the outgoing or incoming links of the focused note."""
        card_id = self.focused_id
        if card_id is None:
            return False
        self.store.note(card_id)
        self.navigator.enter(LinkView(card_id, direction))
        return True

    def view(self, ref: Ref, focus: int) -> None:
        self.navigator.view(ref, focus)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _index_note(self, card_id: str, text: str) -> bool:
        try:
            self.search_index.index_text(card_id, text)
        except FormatStripError as exc:
            logger.warning("Not re-indexing {}: {}", card_id, exc)
            return False
        return True

    def reindex(self) -> int:
        """Rebuild the search index from every note in the store."""
        self.search_index = SearchIndex(self.settings.weighting)
        indexed = 0
        for card_id, note in self.store.notes():
            if note.contents and self._index_note(card_id, note.contents):
                indexed += 1
        logger.debug("Indexed {} notes", indexed)
        return indexed

    def _reindex_changed(self, before: dict[str, Card]) -> None:
        for card_id in set(before) | set(self.store.cards):
            old, new = before.get(card_id), self.store.cards.get(card_id)
            old_text = old.contents if isinstance(old, Note) else None
            new_text = new.contents if isinstance(new, Note) else None
            if old_text == new_text:
                continue
            if new_text:
                self._index_note(card_id, new_text)
            else:
                self.search_index.discard(card_id)

    def _show_results(self, results: list[str]) -> str:
        index_id = self.store.new_index(results)
        # the anchor and the edited note belong to the frame being left
        self.navigator.stop_editing()
        self.navigator.end_selecting()
        self.navigator.enter(index_id)
        return index_id

    def search(self, query: str) -> str:
        """Run *query*, store the hits as a new index, enter it and return its ID."""
        try:
            results = self.search_index.search(query, self.settings.max_results)
        except FormatStripError as exc:
            logger.warning("Unreadable search query {!r}: {}", query, exc)
            results = []
        logger.debug("Search {!r}: {} hits", query, len(results))
        return self._show_results(results)

    def show_related(self) -> str | None:
        """Search using the focused note's text, excluding the note itself.

        A note whose markdown cannot be stripped gets an empty result view.
        """
        card_id = self.focused_id
        if card_id is None:
            return None
        note = self.store.note(card_id)
        try:
            vector = self.search_index.vectorize(note.contents)
        except FormatStripError as exc:
            logger.warning("Cannot find notes related to {}: {}", card_id, exc)
            vector = {}
        ranked = self.search_index.rank(vector, self.settings.max_results + 1)
        results = [other for other, _ in ranked if other != card_id][: self.settings.max_results]
        return self._show_results(results)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def collect_garbage(self) -> set[str]:
        """Delete cards unreachable from the root, breadcrumbs or clipboard."""
        roots = [self.root, *self.clipboard]
        for ref in self.navigator.refs():
            roots.append(ref.note_id if isinstance(ref, LinkView) else ref)
        with self.transaction():
            dead = collect_garbage(self.store, roots)
        for card_id in dead:
            self.search_index.discard(card_id)
        return dead
