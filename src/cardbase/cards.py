"""Card dataclasses: notes, indexes and link views."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union


def new_id() -> str:
    """Return a fresh opaque card identifier."""
    return str(uuid.uuid4())


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"

    @property
    def opposite(self) -> "Direction":
        return Direction.INCOMING if self is Direction.OUTGOING else Direction.OUTGOING

    @property
    def suffix(self) -> str:
        return f"-{self.value}"


@dataclass
class Note:
    """A markdown note together with its link lists."""

    kind: ClassVar[str] = "note"

    contents: str = ""
    #: IDs of notes this note links to
    outgoing: list[str] = field(default_factory=list)
    #: IDs of notes that link to this note
    incoming: list[str] = field(default_factory=list)

    def links(self, direction: Direction) -> list[str]:
        return self.outgoing if direction is Direction.OUTGOING else self.incoming

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "contents": self.contents,
            "outgoing": list(self.outgoing),
            "incoming": list(self.incoming),
        }


@dataclass
class Index:
    """An ordered folder of card IDs."""

    kind: ClassVar[str] = "index"

    contents: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "contents": list(self.contents)}


Card = Union[Note, Index]


@dataclass(frozen=True)
class LinkView:
    """One of a note's two link lists, addressed like an Index."""

    note_id: str
    direction: Direction

    @property
    def key(self) -> str:
        """Canonical string form, ``<note_id>-outgoing`` or ``<note_id>-incoming``."""
        return self.note_id + self.direction.suffix

    @classmethod
    def parse(cls, key: str) -> "LinkView | None":
        """Split a ``<id>-outgoing`` / ``<id>-incoming`` key, or return ``None``."""
        for direction in Direction:
            if key.endswith(direction.suffix) and len(key) > len(direction.suffix):
                return cls(key[: -len(direction.suffix)], direction)
        return None

    def __str__(self) -> str:
        return self.key


#: Anything the navigator can browse: a plain Index ID or a note's link list.
Ref = Union[str, LinkView]


def card_from_dict(data: dict[str, Any]) -> Card:
    """Rebuild a :class:`Note` or :class:`Index` from its ``to_dict`` form."""
    kind = data.get("type")
    if kind == Note.kind:
        return Note(
            contents=str(data.get("contents", "")),
            outgoing=list(data.get("outgoing") or []),
            incoming=list(data.get("incoming") or []),
        )
    if kind == Index.kind:
        return Index(contents=list(data.get("contents") or []))
    raise ValueError(f"unknown card type {kind!r}")
