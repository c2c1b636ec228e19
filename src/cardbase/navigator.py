"""Breadcrumb navigator: a stack of ``(ref, focus)`` frames plus a global mode.

``focus`` is a position in the current frame's sequence, or ``-1`` when no
card is focused.  Positions handed to the navigator are clamped, never
rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cardbase.cards import Card, Ref
from cardbase.errors import CardbaseError

if TYPE_CHECKING:
    from cardbase.store import CardStore


class Mode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SELECTING = "selecting"


@dataclass
class Frame:
    ref: Ref
    focus: int = -1


class Navigator:
    """Enter/exit/up/down over the indexes of a :class:`CardStore`."""

    def __init__(self, store: "CardStore", root: str) -> None:
        self.store = store
        self.crumbs: list[Frame] = [Frame(store.resolve(root), -1)]
        self.mode = Mode.VIEWING
        #: Selection anchor; only set while ``mode`` is ``SELECTING``
        self.anchor: int | None = None
        self._forward: list[Frame] = []

    # ------------------------------------------------------------------
    # Current frame
    # ------------------------------------------------------------------

    @property
    def current(self) -> Frame:
        return self.crumbs[-1]

    @property
    def ref(self) -> Ref:
        return self.current.ref

    @property
    def focus(self) -> int:
        return self.current.focus

    @focus.setter
    def focus(self, value: int) -> None:
        self.current.focus = value

    @property
    def contents(self) -> list[str]:
        return self.store.sequence(self.current.ref)

    @property
    def focused_id(self) -> str | None:
        """ID under the focus, ``None`` when focus is ``-1``."""
        contents = self.contents
        if 0 <= self.focus < len(contents):
            return contents[self.focus]
        return None

    @property
    def focused_card(self) -> Card | None:
        card_id = self.focused_id
        return self.store.cards.get(card_id) if card_id is not None else None

    # ------------------------------------------------------------------
    # Breadcrumbs
    # ------------------------------------------------------------------

    def enter(self, ref: Ref) -> None:
        """Push a frame for *ref*, focusing its first card if it has one."""
        ref = self.store.resolve(ref)
        length = len(self.store.sequence(ref))
        self.crumbs.append(Frame(ref, 0 if length else -1))
        self._forward.clear()

    def exit(self) -> None:
        """Pop the current frame; the root frame is never popped."""
        if len(self.crumbs) > 1:
            self._forward.append(self.crumbs.pop())

    def forward(self) -> bool:
        """Re-enter the most recently exited frame, if any."""
        if not self._forward:
            return False
        self.crumbs.append(self._forward.pop())
        self.clamp()
        return True

    def drop_stale_forward(self) -> None:
        """Forget forward frames whose sequence no longer exists in the store."""
        self._forward = [frame for frame in self._forward if self._browsable(frame.ref)]

    def _browsable(self, ref: Ref) -> bool:
        try:
            self.store.sequence(ref)
        except CardbaseError:
            return False
        return True

    def refs(self) -> list[Ref]:
        """Every ref on the breadcrumb and forward stacks."""
        return [frame.ref for frame in (*self.crumbs, *self._forward)]

    def view(self, ref: Ref, focus: int) -> None:
        """Jump to *ref* at *focus*, replacing the current frame."""
        ref = self.store.resolve(ref)
        length = len(self.store.sequence(ref))
        self.crumbs[-1] = Frame(ref, _bound(focus, -1, length - 1))

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def go_up(self) -> None:
        # a selection cannot extend onto "no card"
        lower = 0 if self.mode is Mode.SELECTING else -1
        if self.focus > lower:
            self.focus -= 1

    def go_down(self) -> None:
        if self.focus < len(self.contents) - 1:
            self.focus += 1

    # ------------------------------------------------------------------
    # Mode guards
    # ------------------------------------------------------------------

    def begin_editing(self) -> bool:
        if self.focus < 0:
            return False
        self.mode = Mode.EDITING
        return True

    def stop_editing(self) -> None:
        if self.mode is Mode.EDITING:
            self.mode = Mode.VIEWING

    def begin_selecting(self) -> bool:
        """Switch to selecting; the first switch anchors the selection at the focus."""
        if self.focus < 0:
            return False
        self.mode = Mode.SELECTING
        if self.anchor is None:
            self.anchor = self.focus
        return True

    def end_selecting(self) -> None:
        self.mode = Mode.VIEWING
        self.anchor = None

    def selection_range(self) -> tuple[int, int] | None:
        """Inclusive ``(lower, upper)`` of the selection, or ``None``."""
        if self.mode is not Mode.SELECTING or self.anchor is None:
            return None
        return min(self.focus, self.anchor), max(self.focus, self.anchor)

    # ------------------------------------------------------------------
    # Invariant upkeep
    # ------------------------------------------------------------------

    def clamp(self) -> None:
        """Bring every frame's focus (and the anchor) back inside its sequence."""
        for frame in self.crumbs:
            length = len(self.store.sequence(frame.ref))
            frame.focus = _bound(frame.focus, -1, length - 1)
        if self.anchor is not None:
            length = len(self.contents)
            if length == 0:
                self.end_selecting()
            else:
                self.anchor = _bound(self.anchor, 0, length - 1)


def _bound(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))
