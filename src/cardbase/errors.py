"""Exception hierarchy shared by the card store, navigator and search engine."""

from __future__ import annotations


class CardbaseError(Exception):
    """Base class for every error raised by :mod:`cardbase`."""


class CardNotFound(CardbaseError, KeyError):
    """No card is stored under the requested identifier."""

    def __init__(self, card_id: str) -> None:
        super().__init__(card_id)
        self.card_id = card_id

    def __str__(self) -> str:
        return f"no card with id {self.card_id!r}"


class TypeMismatch(CardbaseError, TypeError):
    """An operation expected one card variant but found the other."""

    def __init__(self, card_id: str, expected: str, found: str) -> None:
        super().__init__(f"card {card_id!r} is a {found}, expected a {expected}")
        self.card_id = card_id
        self.expected = expected
        self.found = found


class IndexOutOfBounds(CardbaseError, IndexError):
    """A position argument fell outside the target sequence."""

    def __init__(self, ref: object, position: int, length: int) -> None:
        super().__init__(f"position {position} out of range for {ref!s} (length {length})")
        self.ref = ref
        self.position = position
        self.length = length


class FormatStripError(CardbaseError, ValueError):
    """Markdown could not be reduced to plain text."""


class SnapshotError(CardbaseError, ValueError):
    """A serialised snapshot is malformed."""
