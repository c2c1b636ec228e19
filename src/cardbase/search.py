"""Inverted search index over note text.

The index maps each stemmed token to a posting list ``{card_id: weight}``.
It also remembers the vector each card was last indexed with, so a card
re-indexed after an edit loses the tokens its new text no longer contains.

Ranking
-------
A query is normalised with the same pipeline as documents.  For every card
that shares at least one token with the query, the index rebuilds that card's
vector restricted to the query tokens and scores it with
:func:`ranked_similarity`: the number of shared tokens plus the dot product of
the two vectors.  With normalised weights the dot product stays below one, so
a card matching more distinct query tokens always outranks one matching fewer.

:class:`Indexer` wraps a :class:`SearchIndex` for asyncio callers: text is
normalised in a worker thread and updates to the same card run one at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

import polars as pl
from loguru import logger

from cardbase.errors import FormatStripError
from cardbase.text import Weighting, features

DEFAULT_LIMIT = 50

TermVector = Mapping[str, float]


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def overlap(a: TermVector, b: TermVector) -> int:
    """Number of distinct tokens present in both vectors."""
    return len(a.keys() & b.keys())


def dot(a: TermVector, b: TermVector) -> float:
    if len(b) < len(a):
        a, b = b, a
    return sum(weight * b[token] for token, weight in a.items() if token in b)


def ranked_similarity(query: TermVector, doc: TermVector) -> float:
    return overlap(query, doc) + dot(query, doc)


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class SearchIndex:
    """Token → ``{card_id: weight}`` postings with incremental add/remove."""

    def __init__(self, weighting: Weighting | str = Weighting.NORMALIZED) -> None:
        self.weighting = Weighting(weighting)
        self.postings: dict[str, dict[str, float]] = {}
        self._vectors: dict[str, dict[str, float]] = {}

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._vectors

    def __len__(self) -> int:
        return len(self._vectors)

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def add_to_index(self, card_id: str, vector: TermVector) -> None:
        """Index *card_id* under *vector*, replacing whatever it was indexed under before."""
        previous = self._vectors.get(card_id)
        if previous is not None:
            self.remove_from_index(card_id, dict(previous))
        for token, weight in vector.items():
            self.postings.setdefault(token, {})[card_id] = weight
        if vector:
            self._vectors[card_id] = dict(vector)

    def remove_from_index(self, card_id: str, vector: TermVector) -> None:
        """Drop *card_id* from the postings of every token in *vector*.

        Tokens or cards that are not indexed are skipped, so repeating the
        call changes nothing.
        """
        for token in vector:
            posting = self.postings.get(token)
            if posting is None:
                continue
            posting.pop(card_id, None)
            if not posting:
                del self.postings[token]

        stored = self._vectors.get(card_id)
        if stored is not None:
            for token in vector:
                stored.pop(token, None)
            if not stored:
                del self._vectors[card_id]

    def discard(self, card_id: str) -> None:
        """Forget everything indexed for *card_id*."""
        previous = self._vectors.get(card_id)
        if previous is not None:
            self.remove_from_index(card_id, dict(previous))

    def vectorize(self, text: str) -> dict[str, float]:
        return features(text, self.weighting)

    def index_text(self, card_id: str, text: str) -> None:
        """Normalise *text* and index it for *card_id*.

        A :class:`FormatStripError` propagates before the index is touched.
        """
        vector = self.vectorize(text)
        if vector:
            self.add_to_index(card_id, vector)
        else:
            self.discard(card_id)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def vector_of(self, card_id: str) -> dict[str, float]:
        return dict(self._vectors.get(card_id, {}))

    def documents(self) -> list[str]:
        return sorted(self._vectors)

    def projections(self, query: TermVector) -> dict[str, dict[str, float]]:
        """Rebuild each matching card's vector, restricted to the query tokens."""
        result: dict[str, dict[str, float]] = {}
        for token in query:
            for card_id, weight in self.postings.get(token, {}).items():
                result.setdefault(card_id, {})[token] = weight
        return result

    def rank(self, query: TermVector, limit: int = DEFAULT_LIMIT) -> list[tuple[str, float]]:
        """Return ``(card_id, score)`` pairs, best first, at most *limit* of them.

        Cards are ordered by shared-token count, then dot product, then ID.
        """
        if not query:
            return []
        scored = [
            (overlap(query, doc), dot(query, doc), card_id)
            for card_id, doc in self.projections(query).items()
        ]
        # sort on (overlap, dot) rather than their sum so raw weights rank the same way
        scored.sort(key=lambda row: (-row[0], -row[1], row[2]))
        return [(card_id, shared + weight) for shared, weight, card_id in scored[:limit]]

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[str]:
        """Return up to *limit* card IDs matching *query*, best first."""
        return [card_id for card_id, _ in self.rank(self.vectorize(query), limit)]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def postings_frame(self) -> pl.DataFrame:
        """Return every posting as a ``token, card_id, weight`` DataFrame."""
        rows = [
            {"token": token, "card_id": card_id, "weight": weight}
            for token, posting in self.postings.items()
            for card_id, weight in posting.items()
        ]
        schema = {"token": pl.Utf8, "card_id": pl.Utf8, "weight": pl.Float64}
        return pl.DataFrame(rows, schema=schema).sort(["token", "card_id"])


# ---------------------------------------------------------------------------
# Async front end
# ---------------------------------------------------------------------------


class Indexer:
    """Coroutine-friendly wrapper around :class:`SearchIndex`.

    Normalisation runs in a worker thread.  Updates for one card are
    serialised by a per-card lock; postings are only mutated on the event
    loop between awaits, so two cards sharing a token never interleave.
    A card's lock is dropped once no update holds or awaits it.
    """

    def __init__(self, index: SearchIndex) -> None:
        self.index = index
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def _serialised(self, card_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(card_id, asyncio.Lock())
        self._users[card_id] = self._users.get(card_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[card_id] -= 1
            if not self._users[card_id]:
                del self._users[card_id]
                del self._locks[card_id]

    async def index_note(self, card_id: str, text: str) -> bool:
        """Re-index *card_id*; return ``False`` when its markdown cannot be stripped."""
        async with self._serialised(card_id):
            try:
                vector = await asyncio.to_thread(features, text, self.index.weighting)
            except FormatStripError as exc:
                logger.warning("Keeping previous index entries for {}: {}", card_id, exc)
                return False
            if vector:
                self.index.add_to_index(card_id, vector)
            else:
                self.index.discard(card_id)
            return True

    async def unindex_note(self, card_id: str) -> None:
        async with self._serialised(card_id):
            self.index.discard(card_id)

    async def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[str]:
        vector = await asyncio.to_thread(features, query, self.index.weighting)
        return [card_id for card_id, _ in self.index.rank(vector, limit)]
