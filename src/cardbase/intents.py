"""Intents: named user actions and the dispatcher that applies them to a session.

A front end maps raw keys to intents with :data:`KEYMAP` (normal mode,
including vim-style bindings) and feeds them one at a time to
:func:`dispatch`.  What an intent does depends on the session's mode:

=============  ==========================================================
viewing        edit, new note, paste, left/right (link views), find
               related, back/forward through breadcrumbs
viewing or     remove, copy, cut, up/down, select up/down, back (ends the
selecting      selection)
editing        update note, stop editing
any            search (ends editing or the selection, then enters the
               results)
=============  ==========================================================
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from cardbase.cards import Direction
from cardbase.errors import CardbaseError
from cardbase.navigator import Mode

if TYPE_CHECKING:
    from cardbase.session import Session


class Intent(str, Enum):
    SEARCH = "search"
    FIND_RELATED = "find related notes"

    EDIT = "edit"
    UPDATE_NOTE = "update note"
    STOP_EDITING = "stop editing"
    NEW_NOTE = "new note"
    REMOVE = "remove"

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    BACK = "back"
    FORWARD = "forward"

    COPY = "copy"
    PASTE = "paste"
    CUT = "cut"
    UNDO = "undo"
    REDO = "redo"

    SELECT_DOWN = "select and go down"
    SELECT_UP = "select and go up"


KEYMAP: dict[str, Intent] = {
    "enter": Intent.EDIT,
    "command+c": Intent.COPY,
    "command+x": Intent.CUT,
    "command+v": Intent.PASTE,
    "command+z": Intent.UNDO,
    "command+shift+z": Intent.REDO,
    "space": Intent.NEW_NOTE,
    "right": Intent.RIGHT,
    "left": Intent.LEFT,
    "up": Intent.UP,
    "down": Intent.DOWN,
    "escape": Intent.BACK,
    "backspace": Intent.REMOVE,
    "shift+down": Intent.SELECT_DOWN,
    "shift+up": Intent.SELECT_UP,
    "shift+f": Intent.FIND_RELATED,
    # vim
    "j": Intent.DOWN,
    "k": Intent.UP,
    "h": Intent.LEFT,
    "l": Intent.RIGHT,
    "shift+h": Intent.BACK,
    "shift+l": Intent.FORWARD,
    "u": Intent.UNDO,
    "ctrl+r": Intent.REDO,
    "y": Intent.COPY,
    "p": Intent.PASTE,
    "x": Intent.CUT,
    "d": Intent.REMOVE,
    "i": Intent.EDIT,
    "a": Intent.NEW_NOTE,
}


def intent_for_key(key: str) -> Intent | None:
    """Look up *key*; named keys (``Enter``, ``Escape``) match case-insensitively."""
    if len(key) > 1:
        key = key.lower()
    return KEYMAP.get(key)


def dispatch(session: "Session", intent: Intent | str, **payload: Any) -> bool:
    """Apply *intent* to *session*.

    Returns ``False`` when a :class:`~cardbase.errors.CardbaseError` (most
    often a :class:`~cardbase.errors.TypeMismatch`) stopped the intent; the
    error is logged and the session is left usable.
    """
    intent = Intent(intent)
    try:
        _apply(session, intent, payload)
    except CardbaseError as exc:
        logger.error("{} failed: {}", intent.value, exc)
        return False
    return True


def _apply(session: "Session", intent: Intent, payload: dict[str, Any]) -> None:
    nav = session.navigator

    if intent is Intent.SEARCH:
        session.search(payload["query"])

    if session.mode is Mode.VIEWING:
        if intent is Intent.EDIT:
            nav.begin_editing()
        elif intent is Intent.FIND_RELATED:
            session.show_related()
        elif intent is Intent.BACK:
            nav.exit()
        elif intent is Intent.FORWARD:
            nav.forward()
        elif intent is Intent.NEW_NOTE:
            session.new_note()
        elif intent is Intent.PASTE:
            session.paste()
        elif intent is Intent.UNDO:
            session.undo()
        elif intent is Intent.REDO:
            session.redo()
        elif intent is Intent.RIGHT:
            session.enter_links(Direction.OUTGOING)
        elif intent is Intent.LEFT:
            session.enter_links(Direction.INCOMING)

    if session.mode in (Mode.VIEWING, Mode.SELECTING):
        if intent is Intent.REMOVE and session.focus >= 0:
            session.remove_selection()
        elif intent is Intent.COPY and session.focus >= 0:
            session.copy()
            nav.end_selecting()
        elif intent is Intent.CUT and session.focus >= 0:
            session.cut()
        elif intent is Intent.BACK:
            nav.end_selecting()
        elif intent is Intent.UP:
            nav.go_up()
        elif intent is Intent.DOWN:
            nav.go_down()
        elif intent is Intent.SELECT_DOWN:
            if nav.begin_selecting():
                nav.go_down()
        elif intent is Intent.SELECT_UP:
            if nav.begin_selecting():
                nav.go_up()

    if session.mode is Mode.EDITING:
        if intent is Intent.STOP_EDITING:
            nav.stop_editing()
        elif intent is Intent.UPDATE_NOTE:
            session.update_note(payload["id"], payload["contents"])
