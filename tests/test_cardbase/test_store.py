"""Unit tests for cardbase.store.CardStore."""

import pytest

from cardbase.cards import Direction, Index, LinkView, Note
from cardbase.errors import CardNotFound, IndexOutOfBounds, TypeMismatch
from cardbase.graph import check_links
from cardbase.store import CardStore


def _store(copy_on_write: bool = False) -> CardStore:
    return CardStore(
        {"root": Index(), "a": Note("alpha"), "b": Note("beta"), "c": Note("gamma"), "folder": Index()},
        copy_on_write=copy_on_write,
    )


@pytest.fixture()
def store() -> CardStore:
    return _store()


# ---------------------------------------------------------------------------
# Creation and lookup
# ---------------------------------------------------------------------------


class TestLookup:
    def test_new_note_is_empty_with_empty_link_lists(self):
        store = CardStore()
        root = store.new_index()
        note_id = store.new_note()
        store.insert_after(root, -1, note_id)

        assert store.index(root).contents == [note_id]
        assert store.note(note_id).contents == ""
        assert store.sequence(f"{note_id}-incoming") == []
        assert store.sequence(f"{note_id}-outgoing") == []

    def test_new_ids_are_unique(self):
        store = CardStore()
        assert len({store.new_note() for _ in range(50)}) == 50

    def test_note_on_index_raises_type_mismatch(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.note("root")

    def test_index_on_note_raises_type_mismatch(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.index("a")

    def test_unknown_id_raises(self, store: CardStore):
        with pytest.raises(CardNotFound):
            store.get("missing")

    def test_resolve_link_key(self, store: CardStore):
        assert store.resolve("a-outgoing") == LinkView("a", Direction.OUTGOING)
        assert store.resolve("a-incoming") == LinkView("a", Direction.INCOMING)

    def test_resolve_plain_id_unchanged(self, store: CardStore):
        assert store.resolve("root") == "root"
        assert store.resolve("folder-outgoing") == "folder-outgoing"


# ---------------------------------------------------------------------------
# insert_after / remove on plain indexes
# ---------------------------------------------------------------------------


class TestPlainIndex:
    def test_insert_at_front(self, store: CardStore):
        store.insert_after("root", -1, "a")
        store.insert_after("root", -1, "b")
        assert store.index("root").contents == ["b", "a"]

    def test_insert_after_position(self, store: CardStore):
        store.insert_after("root", -1, "a")
        store.insert_after("root", 0, "c")
        store.insert_after("root", 0, "b")
        assert store.index("root").contents == ["a", "b", "c"]

    def test_insert_out_of_range(self, store: CardStore):
        with pytest.raises(IndexOutOfBounds):
            store.insert_after("root", 0, "a")
        with pytest.raises(IndexOutOfBounds):
            store.insert_after("root", -2, "a")

    def test_remove_returns_id(self, store: CardStore):
        store.insert_after("root", -1, "a")
        store.insert_after("root", 0, "b")
        assert store.remove("root", 0) == "a"
        assert store.index("root").contents == ["b"]

    def test_remove_out_of_range(self, store: CardStore):
        store.insert_after("root", -1, "a")
        with pytest.raises(IndexOutOfBounds):
            store.remove("root", 1)
        with pytest.raises(IndexOutOfBounds):
            store.remove("root", -1)

    def test_insert_into_note_raises(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.insert_after("a", -1, "b")

    def test_remove_from_note_raises(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.remove("a", 0)

    def test_removed_note_stays_in_store(self, store: CardStore):
        store.insert_after("root", -1, "a")
        store.remove("root", 0)
        assert "a" in store

    def test_indexes_can_be_nested(self, store: CardStore):
        store.insert_after("root", -1, "folder")
        store.insert_after("folder", -1, "a")
        assert store.index("folder").contents == ["a"]


# ---------------------------------------------------------------------------
# Link maintenance
# ---------------------------------------------------------------------------


class TestLinks:
    def test_outgoing_insert_adds_incoming(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "b")
        assert store.note("a").outgoing == ["b"]
        assert store.note("b").incoming == ["a"]

    def test_incoming_insert_adds_outgoing(self, store: CardStore):
        store.insert_after("a-incoming", -1, "b")
        assert store.note("a").incoming == ["b"]
        assert store.note("b").outgoing == ["a"]

    def test_remove_from_outgoing_unlinks(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "b")
        store.remove("a-outgoing", 0)
        assert store.note("a").outgoing == []
        assert store.note("b").incoming == []

    def test_remove_from_incoming_unlinks(self, store: CardStore):
        store.insert_after(LinkView("a", Direction.INCOMING), -1, "b")
        store.remove(LinkView("a", Direction.INCOMING), 0)
        assert store.note("b").outgoing == []

    def test_unlink_keeps_other_links(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "c")
        store.insert_after("b-outgoing", -1, "c")
        store.remove("a-outgoing", 0)
        assert store.note("c").incoming == ["b"]

    def test_duplicate_link_removed_once(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "b")
        store.insert_after("a-outgoing", 0, "b")
        store.remove("a-outgoing", 0)
        assert store.note("a").outgoing == ["b"]
        assert store.note("b").incoming == ["a"]

    def test_self_link(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "a")
        assert store.note("a").outgoing == ["a"]
        assert store.note("a").incoming == ["a"]
        store.remove("a-outgoing", 0)
        assert store.note("a").outgoing == []
        assert store.note("a").incoming == []

    def test_linking_an_index_is_rejected_untouched(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.insert_after("a-outgoing", -1, "folder")
        assert store.note("a").outgoing == []

    def test_invariant_after_mixed_edits(self, store: CardStore):
        store.insert_after("a-outgoing", -1, "b")
        store.insert_after("a-outgoing", 0, "c")
        store.insert_after("b-incoming", -1, "c")
        store.insert_after("c-outgoing", -1, "a")
        store.remove("a-outgoing", 1)
        assert check_links(store) == []


# ---------------------------------------------------------------------------
# Copy-on-write
# ---------------------------------------------------------------------------


def _edit_script(store: CardStore) -> None:
    store.insert_after("root", -1, "a")
    store.insert_after("root", 0, "b")
    store.insert_after("a-outgoing", -1, "b")
    store.insert_after("a-outgoing", 0, "c")
    store.insert_after("c-incoming", -1, "b")
    store.remove("a-outgoing", 0)
    store.remove("root", 0)
    store.update_note("c", "changed")


class TestCopyOnWrite:
    def test_same_observable_store(self):
        in_place, cow = _store(), _store(copy_on_write=True)
        _edit_script(in_place)
        _edit_script(cow)
        assert in_place.to_dict() == cow.to_dict()

    def test_publishes_new_objects(self):
        store = _store(copy_on_write=True)
        before_root, before_b = store.get("root"), store.get("b")
        store.insert_after("root", -1, "a")
        store.insert_after("a-outgoing", -1, "b")
        assert store.get("root") is not before_root
        assert store.get("b") is not before_b
        assert before_root.contents == []

    def test_in_place_keeps_objects(self):
        store = _store()
        before = store.get("root")
        store.insert_after("root", -1, "a")
        assert store.get("root") is before

    def test_revise_discards_on_error(self, store: CardStore):
        with pytest.raises(RuntimeError):
            with store.revise("root") as draft:
                draft.contents.append("a")
                raise RuntimeError("boom")
        assert store.index("root").contents == []

    def test_revise_sequence(self, store: CardStore):
        store.revise_sequence("root", lambda items: items.extend(["a", "b"]))
        assert store.index("root").contents == ["a", "b"]

    def test_revise_sequence_type_checks(self, store: CardStore):
        with pytest.raises(TypeMismatch):
            store.revise_sequence("a", lambda items: items.append("b"))


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


class TestSerialisation:
    def test_round_trip(self, store: CardStore):
        store.insert_after("root", -1, "a")
        store.insert_after("a-outgoing", -1, "b")
        rebuilt = CardStore.from_dict(store.to_dict())
        assert rebuilt.to_dict() == store.to_dict()
        assert rebuilt.note("b").incoming == ["a"]
