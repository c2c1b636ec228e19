"""Link-graph analysis over a :class:`~cardbase.store.CardStore`.

Uses :mod:`networkx` for the note-to-note link graph and for reachability.
Cards removed from every index stay in the store; :func:`collect_garbage`
drops the ones nothing reachable from the root still refers to.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import networkx as nx
from loguru import logger

from cardbase.cards import Direction, Index, Note

if TYPE_CHECKING:
    from cardbase.store import CardStore


# ---------------------------------------------------------------------------
# Graphs
# ---------------------------------------------------------------------------


def link_graph(store: "CardStore") -> nx.DiGraph:
    """Return a directed graph with an edge ``a -> b`` for every ``b in a.outgoing``."""
    G: nx.DiGraph = nx.DiGraph()
    for card_id, note in store.notes():
        G.add_node(card_id)
        for target in note.outgoing:
            G.add_edge(card_id, target)
    return G


def reference_graph(store: "CardStore") -> nx.DiGraph:
    """Edges from each index to its contents and from each note to both link lists."""
    G: nx.DiGraph = nx.DiGraph()
    for card_id, card in store.cards.items():
        G.add_node(card_id)
        targets = card.contents if isinstance(card, Index) else card.outgoing + card.incoming
        for target in targets:
            G.add_edge(card_id, target)
    return G


# ---------------------------------------------------------------------------
# Invariant check
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinkViolation:
    """``target`` is in ``source``'s *direction* list but not the reverse."""

    source: str
    target: str
    direction: Direction


def check_links(store: "CardStore") -> list[LinkViolation]:
    """Return every asymmetric link; an empty list means the graph is consistent."""
    violations: list[LinkViolation] = []
    for card_id, note in store.notes():
        for direction in Direction:
            for target in note.links(direction):
                other = store.cards.get(target)
                if not isinstance(other, Note) or card_id not in other.links(direction.opposite):
                    violations.append(LinkViolation(card_id, target, direction))
    return violations


# ---------------------------------------------------------------------------
# Garbage collection
# ---------------------------------------------------------------------------


def reachable(store: "CardStore", roots: Iterable[str]) -> set[str]:
    G = reference_graph(store)
    seen: set[str] = set()
    for root in roots:
        if root in G and root not in seen:
            seen.add(root)
            seen |= nx.descendants(G, root)
    return {card_id for card_id in seen if card_id in store}


def orphans(store: "CardStore", roots: Iterable[str]) -> set[str]:
    return set(store.cards) - reachable(store, roots)


def collect_garbage(store: "CardStore", roots: Iterable[str]) -> set[str]:
    """Delete every card unreachable from *roots* and return their IDs.

    Surviving notes never list a collected card: anything linked from a
    reachable note is itself reachable.
    """
    dead = orphans(store, roots)
    for card_id in dead:
        store.delete(card_id)
    if dead:
        logger.info("Collected {} unreachable cards", len(dead))
    return dead
