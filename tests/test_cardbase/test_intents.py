"""Unit tests for cardbase.intents."""

import pytest

from cardbase.intents import Intent, dispatch, intent_for_key
from cardbase.navigator import Mode
from cardbase.session import Session


def _session(n: int) -> tuple[Session, list[str]]:
    session = Session()
    ids = [session.store.new_note(f"note {i}") for i in range(n)]
    for position, card_id in enumerate(ids):
        session.store.insert_after(session.root, position - 1, card_id)
    session.navigator.focus = 0 if ids else -1
    return session, ids


# ---------------------------------------------------------------------------
# Keymap
# ---------------------------------------------------------------------------


class TestKeymap:
    @pytest.mark.parametrize(
        "key,intent",
        [
            ("enter", Intent.EDIT),
            ("Enter", Intent.EDIT),
            ("Escape", Intent.BACK),
            ("shift+down", Intent.SELECT_DOWN),
            ("command+c", Intent.COPY),
            ("j", Intent.DOWN),
            ("k", Intent.UP),
        ],
    )
    def test_lookup(self, key, intent):
        assert intent_for_key(key) is intent

    def test_single_letters_are_case_sensitive(self):
        assert intent_for_key("J") is None

    def test_unknown_key(self):
        assert intent_for_key("f13") is None

    def test_intent_values_round_trip(self):
        assert Intent("select and go down") is Intent.SELECT_DOWN


# ---------------------------------------------------------------------------
# Editing flow
# ---------------------------------------------------------------------------


class TestEditing:
    def test_new_note_update_and_search(self):
        session = Session()
        assert dispatch(session, Intent.NEW_NOTE)
        assert session.mode is Mode.EDITING
        card_id = session.focused_id

        dispatch(session, Intent.UPDATE_NOTE, id=card_id, contents="Cats purr")
        dispatch(session, Intent.STOP_EDITING)
        assert session.mode is Mode.VIEWING

        dispatch(session, "search", query="cat")
        assert session.contents == [card_id]

    def test_edit_needs_focus(self):
        session = Session()
        dispatch(session, Intent.EDIT)
        assert session.mode is Mode.VIEWING

    def test_motion_ignored_while_editing(self):
        session, _ = _session(2)
        dispatch(session, Intent.EDIT)
        dispatch(session, Intent.DOWN)
        assert session.mode is Mode.EDITING
        assert session.focus == 0

    def test_undo_intent(self):
        session, ids = _session(2)
        dispatch(session, Intent.REMOVE)
        assert session.contents == ids[1:]
        dispatch(session, Intent.UNDO)
        assert session.contents == ids
        dispatch(session, Intent.REDO)
        assert session.contents == ids[1:]


# ---------------------------------------------------------------------------
# Navigation and selection
# ---------------------------------------------------------------------------


class TestNavigation:
    def test_up_down(self):
        session, _ = _session(3)
        dispatch(session, Intent.DOWN)
        dispatch(session, Intent.DOWN)
        dispatch(session, Intent.DOWN)
        assert session.focus == 2
        for _ in range(4):
            dispatch(session, Intent.UP)
        assert session.focus == -1

    def test_back_and_forward(self):
        session, ids = _session(1)
        folder = session.store.new_index([ids[0]])
        session.enter(folder)
        dispatch(session, Intent.BACK)
        assert session.navigator.ref == session.root
        dispatch(session, Intent.FORWARD)
        assert session.navigator.ref == folder

    def test_right_enters_outgoing_links(self):
        session, ids = _session(2)
        session.store.insert_after(f"{ids[0]}-outgoing", -1, ids[1])
        assert dispatch(session, Intent.RIGHT)
        assert session.contents == [ids[1]]
        assert dispatch(session, Intent.LEFT)
        assert session.contents == [ids[0]]

    def test_right_on_index_is_a_type_mismatch(self):
        session, _ = _session(0)
        folder = session.store.new_index()
        session.insert_after(-1, folder)
        session.navigator.focus = 0
        assert dispatch(session, Intent.RIGHT) is False
        assert dispatch(session, Intent.FIND_RELATED) is False
        assert session.navigator.ref == session.root

    def test_select_down_then_copy(self):
        session, ids = _session(3)
        dispatch(session, Intent.SELECT_DOWN)
        assert session.mode is Mode.SELECTING
        dispatch(session, Intent.SELECT_DOWN)
        dispatch(session, Intent.COPY)
        assert session.clipboard == ids
        assert session.mode is Mode.VIEWING

    def test_back_while_selecting_ends_selection_only(self):
        session, ids = _session(3)
        folder = session.store.new_index(ids)
        session.enter(folder)
        dispatch(session, Intent.SELECT_DOWN)
        dispatch(session, Intent.BACK)
        assert session.mode is Mode.VIEWING
        assert session.navigator.ref == folder

    def test_select_then_remove(self):
        session, ids = _session(4)
        session.navigator.focus = 1
        dispatch(session, Intent.SELECT_DOWN)
        dispatch(session, Intent.REMOVE)
        assert session.contents == [ids[0], ids[3]]
        assert session.mode is Mode.VIEWING
        assert session.focus == 1

    def test_cut_and_paste(self):
        session, ids = _session(3)
        dispatch(session, Intent.CUT)
        assert session.contents == ids[1:]
        dispatch(session, Intent.DOWN)
        dispatch(session, Intent.PASTE)
        assert session.contents == [ids[1], ids[2], ids[0]]

    def test_select_needs_focus(self):
        session, _ = _session(2)
        session.navigator.focus = -1
        dispatch(session, Intent.SELECT_DOWN)
        assert session.mode is Mode.VIEWING
        assert session.focus == -1


# ---------------------------------------------------------------------------
# History mixed with breadcrumbs, and errors contained by dispatch
# ---------------------------------------------------------------------------


class TestHistoryAndBreadcrumbs:
    def test_forward_after_undo_drops_vanished_results(self):
        session = Session()
        dispatch(session, Intent.NEW_NOTE)
        dispatch(session, Intent.STOP_EDITING)
        dispatch(session, Intent.SEARCH, query="cat")
        dispatch(session, Intent.BACK)
        assert dispatch(session, Intent.UNDO)
        # the results index was created after the undone checkpoint
        assert dispatch(session, Intent.FORWARD)
        assert session.navigator.ref == session.root
        assert session.contents == []

    def test_forward_survives_undo_when_frame_still_exists(self):
        session, ids = _session(2)
        folder = session.store.new_index([ids[1]])
        session.insert_after(1, folder)
        session.navigator.focus = 0
        session.enter(folder)
        dispatch(session, Intent.BACK)
        dispatch(session, Intent.REMOVE)
        dispatch(session, Intent.UNDO)
        dispatch(session, Intent.FORWARD)
        assert session.navigator.ref == folder

    def test_search_from_editing_leaves_editing(self):
        session = Session()
        dispatch(session, Intent.NEW_NOTE)
        dispatch(session, Intent.SEARCH, query="cat")
        assert session.mode is Mode.VIEWING
        assert len(session.navigator.crumbs) == 2


class TestErrorsContained:
    def test_card_not_found_returns_false(self):
        session, ids = _session(1)
        session.store.delete(ids[0])
        assert dispatch(session, Intent.RIGHT) is False
        assert session.navigator.ref == session.root

    def test_find_related_on_unstrippable_note(self):
        session, ids = _session(0)
        card_id = session.new_note("---\ntitle: [unclosed\n---\nbody text")
        dispatch(session, Intent.STOP_EDITING)
        assert dispatch(session, Intent.FIND_RELATED)
        assert session.contents == []
        assert session.navigator.ref != session.root
        assert card_id in session.store

    def test_find_related_on_rule_and_heading_note(self):
        session, _ = _session(0)
        first = session.new_note("---\nJust a line\n---\nbody text")
        dispatch(session, Intent.STOP_EDITING)
        second = session.new_note("More body text")
        dispatch(session, Intent.STOP_EDITING)
        dispatch(session, Intent.UP)
        assert session.focused_id == first
        assert dispatch(session, Intent.FIND_RELATED)
        assert session.contents == [second]

    def test_unreadable_search_query(self):
        session, _ = _session(1)
        assert dispatch(session, Intent.SEARCH, query="---\nq: [unclosed\n---\ncat")
        assert session.contents == []
