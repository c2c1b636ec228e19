"""CardStore: the single source of truth mapping card IDs to cards.

Every structural edit goes through :meth:`CardStore.insert_after` or
:meth:`CardStore.remove`, which also keep the two link lists of every note
symmetric: ``b in a.outgoing`` exactly when ``a in b.incoming``.

Edits are applied either by splicing the live list in place or, when the
store is created with ``copy_on_write=True``, through :meth:`CardStore.revise`
which publishes a fresh card object so identity-based change detection can
see which cards moved.

Usage::

    store = CardStore()
    root = store.new_index()
    a, b = store.new_note(), store.new_note()
    store.insert_after(root, -1, a)
    store.insert_after(f"{a}-outgoing", -1, b)   # a -> b
    assert store.note(b).incoming == [a]
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger

from cardbase.cards import Card, Index, LinkView, Note, Ref, card_from_dict, new_id
from cardbase.errors import CardNotFound, IndexOutOfBounds, TypeMismatch


class CardStore:
    """Mapping of ID to :class:`Note` / :class:`Index` with link maintenance."""

    def __init__(self, cards: dict[str, Card] | None = None, *, copy_on_write: bool = False) -> None:
        self.cards: dict[str, Card] = dict(cards or {})
        self.copy_on_write = copy_on_write

    def __contains__(self, card_id: object) -> bool:
        return card_id in self.cards

    def __len__(self) -> int:
        return len(self.cards)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, card_id: str) -> Card:
        try:
            return self.cards[card_id]
        except KeyError:
            raise CardNotFound(card_id) from None

    def note(self, card_id: str) -> Note:
        card = self.get(card_id)
        if not isinstance(card, Note):
            raise TypeMismatch(card_id, Note.kind, card.kind)
        return card

    def index(self, card_id: str) -> Index:
        card = self.get(card_id)
        if not isinstance(card, Index):
            raise TypeMismatch(card_id, Index.kind, card.kind)
        return card

    def notes(self) -> Iterator[tuple[str, Note]]:
        for card_id, card in self.cards.items():
            if isinstance(card, Note):
                yield card_id, card

    def resolve(self, ref: Ref) -> Ref:
        """Turn a ``<id>-outgoing`` / ``<id>-incoming`` key into a :class:`LinkView`.

        A key that names a stored card is returned unchanged, as is any string
        whose prefix is not a note.
        """
        if isinstance(ref, LinkView) or ref in self.cards:
            return ref
        view = LinkView.parse(ref)
        if view is not None and isinstance(self.cards.get(view.note_id), Note):
            return view
        return ref

    def sequence(self, ref: Ref) -> list[str]:
        """Return the live ID list behind *ref* (an Index or a note's link list)."""
        ref = self.resolve(ref)
        if isinstance(ref, LinkView):
            return self.note(ref.note_id).links(ref.direction)
        return self.index(ref).contents

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def new_note(self, contents: str = "") -> str:
        card_id = new_id()
        self.cards[card_id] = Note(contents=contents)
        return card_id

    def new_index(self, contents: list[str] | tuple[str, ...] = ()) -> str:
        card_id = new_id()
        self.cards[card_id] = Index(contents=list(contents))
        return card_id

    # ------------------------------------------------------------------
    # Copy-on-write
    # ------------------------------------------------------------------

    @contextmanager
    def revise(self, card_id: str) -> Iterator[Card]:
        """Yield a private copy of *card_id*; publish it when the block exits cleanly.

        An exception inside the block leaves the stored card untouched.
        """
        draft = copy.deepcopy(self.get(card_id))
        yield draft
        self.cards[card_id] = draft

    def revise_sequence(self, ref: Ref, mutate: Callable[[list[str]], Any]) -> None:
        """Apply *mutate* to a private copy of the list behind *ref*, then publish."""
        ref = self.resolve(ref)
        self.sequence(ref)  # type check before copying
        if isinstance(ref, LinkView):
            with self.revise(ref.note_id) as draft:
                mutate(draft.links(ref.direction))  # type: ignore[union-attr]
        else:
            with self.revise(ref) as draft:
                mutate(draft.contents)  # type: ignore[arg-type]

    def _splice(self, ref: Ref, mutate: Callable[[list[str]], Any]) -> None:
        if self.copy_on_write:
            self.revise_sequence(ref, mutate)
        else:
            mutate(self.sequence(ref))

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def insert_after(self, ref: Ref, position: int, card_id: str) -> None:
        """Insert *card_id* right after *position* (``-1`` inserts at the front)."""
        ref = self.resolve(ref)
        length = len(self.sequence(ref))
        if not -1 <= position < length:
            raise IndexOutOfBounds(ref, position, length)

        if isinstance(ref, LinkView):
            # both ends of a link must be notes; check before touching anything
            self.note(card_id)

        self._splice(ref, lambda items: items.insert(position + 1, card_id))

        if isinstance(ref, LinkView):
            back = LinkView(card_id, ref.direction.opposite)
            self._splice(back, lambda items: items.append(ref.note_id))
            logger.debug("linked {} -> {} ({})", ref.note_id, card_id, ref.direction.value)

    def remove(self, ref: Ref, position: int) -> str:
        """Remove and return the ID at *position*, unlinking it when *ref* is a link list."""
        ref = self.resolve(ref)
        current = self.sequence(ref)
        if not 0 <= position < len(current):
            raise IndexOutOfBounds(ref, position, len(current))
        removed = current[position]

        self._splice(ref, lambda items: items.pop(position))

        if isinstance(ref, LinkView) and isinstance(self.cards.get(removed), Note):
            back = LinkView(removed, ref.direction.opposite)
            self._splice(back, lambda items: _discard_first(items, ref.note_id))
            logger.debug("unlinked {} -> {} ({})", ref.note_id, removed, ref.direction.value)
        return removed

    def update_note(self, card_id: str, contents: str) -> None:
        """Replace the markdown text of a note."""
        self.note(card_id)
        if self.copy_on_write:
            with self.revise(card_id) as draft:
                draft.contents = contents  # type: ignore[union-attr]
        else:
            self.note(card_id).contents = contents

    def delete(self, card_id: str) -> Card:
        """Drop *card_id* from the mapping without touching references to it."""
        try:
            return self.cards.pop(card_id)
        except KeyError:
            raise CardNotFound(card_id) from None

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {card_id: card.to_dict() for card_id, card in self.cards.items()}

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, Any]], *, copy_on_write: bool = False) -> "CardStore":
        return cls(
            {card_id: card_from_dict(raw) for card_id, raw in data.items()},
            copy_on_write=copy_on_write,
        )


def _discard_first(items: list[str], value: str) -> None:
    # link lists are short, a linear scan is enough
    for i, item in enumerate(items):
        if item == value:
            del items[i]
            return
