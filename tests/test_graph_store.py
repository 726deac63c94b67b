"""Tests for the in-memory GraphStore."""

import math
from collections import deque

import pytest

from mindcanvas.graph import GraphStore, CHILD_DISTANCE, MSG_ADD_REFUSED, MSG_DELETE_REFUSED
from mindcanvas.model import (
    Node, Connection, ViewState, MindMap, PALETTE,
    ROOT_ID, ROOT_X, ROOT_Y, ROOT_TITLE, ROOT_COLOR, DEFAULT_MAP_TITLE,
)


def reachable_from_root(store: GraphStore) -> set:
    seen = {store.root_id}
    queue = deque([store.root_id])
    while queue:
        current = queue.popleft()
        for child in store.children_of(current):
            if child.id not in seen:
                seen.add(child.id)
                queue.append(child.id)
    return seen


# ===================================================================
# Seeded map
# ===================================================================

class TestDefaultMap:

    def test_fresh_store_has_single_root(self, store):
        assert list(store.nodes) == [ROOT_ID]
        root = store.root
        assert root.is_root
        assert (root.x, root.y) == (ROOT_X, ROOT_Y)
        assert root.title == ROOT_TITLE
        assert root.color == ROOT_COLOR
        assert root.text == ""

    def test_fresh_store_defaults(self, store):
        assert store.connections == []
        assert store.title == DEFAULT_MAP_TITLE
        assert store.map_id is None
        assert (store.view.translate_x, store.view.translate_y) == (0.0, 0.0)
        assert store.selected_id is None

    def test_reset_discards_everything(self, store):
        store.add_child(ROOT_ID)
        store.set_translation(10, 20)
        store.adopt_saved("abc", "Saved")
        store.reset()
        assert list(store.nodes) == [ROOT_ID]
        assert store.connections == []
        assert store.map_id is None
        assert store.title == DEFAULT_MAP_TITLE
        assert store.view.translate_x == 0


# ===================================================================
# add_child
# ===================================================================

class TestAddChild:

    def test_child_at_fixed_distance_with_one_connection(self, store):
        child = store.add_child(ROOT_ID)
        root = store.root
        assert child is not None
        assert math.isclose(math.hypot(child.x - root.x, child.y - root.y), CHILD_DISTANCE)
        assert store.connections == [Connection(ROOT_ID, child.id)]
        assert len(store.nodes) == 2

    def test_explicit_angle(self, store):
        child = store.add_child(ROOT_ID, angle=0.0)
        assert math.isclose(child.x, ROOT_X + CHILD_DISTANCE)
        assert math.isclose(child.y, ROOT_Y)

        below = store.add_child(ROOT_ID, angle=math.pi / 2)
        assert math.isclose(below.x, ROOT_X, abs_tol=1e-9)
        assert math.isclose(below.y, ROOT_Y + CHILD_DISTANCE)

    def test_child_defaults(self, store):
        child = store.add_child(ROOT_ID)
        assert child.title == "New Idea"
        assert child.text == ""
        assert child.is_root is False
        assert child.color in PALETTE

    def test_child_becomes_selected(self, store):
        child = store.add_child(ROOT_ID)
        assert store.selected_id == child.id

    def test_default_parent_is_selection_then_root(self, store):
        first = store.add_child()
        assert store.connections[-1] == Connection(ROOT_ID, first.id)

        # first is now selected, so the next child hangs off it
        second = store.add_child()
        assert store.connections[-1] == Connection(first.id, second.id)

        store.select(None)
        third = store.add_child()
        assert store.connections[-1] == Connection(ROOT_ID, third.id)

    def test_unknown_parent_is_refused_with_message(self, store):
        messages = []
        store.on_status = messages.append
        assert store.add_child("missing") is None
        assert len(store.nodes) == 1
        assert messages == [MSG_ADD_REFUSED]
        assert store.last_message == MSG_ADD_REFUSED

    def test_ids_are_unique(self, store):
        ids = {store.add_child(ROOT_ID).id for _ in range(50)}
        assert len(ids) == 50
        assert ROOT_ID not in ids

    def test_every_node_reachable_from_root(self, store, rng):
        for _ in range(40):
            parent = rng.choice(list(store.nodes))
            store.add_child(parent)
        assert reachable_from_root(store) == set(store.nodes)

    def test_exactly_one_root(self, store):
        for _ in range(10):
            store.add_child()
        assert sum(1 for n in store.nodes.values() if n.is_root) == 1


# ===================================================================
# delete_node
# ===================================================================

class TestDeleteNode:

    def test_root_is_never_deleted(self, store):
        store.add_child(ROOT_ID)
        messages = []
        store.on_status = messages.append
        assert store.delete_node(ROOT_ID) is False
        assert ROOT_ID in store.nodes
        assert len(store.connections) == 1
        assert messages == [MSG_DELETE_REFUSED]

    def test_no_selection_is_refused(self, store):
        store.select(None)
        assert store.delete_node() is False
        assert store.last_message == MSG_DELETE_REFUSED

    def test_two_node_map_back_to_root(self, store):
        child = store.add_child(ROOT_ID)
        assert store.delete_node(child.id) is True
        assert list(store.nodes) == [ROOT_ID]
        assert store.connections == []

    def test_cascade_removes_only_touching_connections(self, store):
        a = store.add_child(ROOT_ID)
        b = store.add_child(ROOT_ID)
        c = store.add_child(a.id)
        d = store.add_child(c.id)

        store.delete_node(c.id)

        assert c.id not in store.nodes
        assert store.connections == [Connection(ROOT_ID, a.id), Connection(ROOT_ID, b.id)]
        # d stays, now unconnected
        assert d.id in store.nodes

    def test_delete_clears_selection(self, store):
        child = store.add_child(ROOT_ID)
        assert store.selected_id == child.id
        store.delete_node()
        assert store.selected_id is None


# ===================================================================
# Content, movement, view
# ===================================================================

class TestContent:

    def test_empty_input_falls_back(self, store):
        child = store.add_child(ROOT_ID)
        store.update_node_content(child.id, "", "")
        assert child.title == "New Idea"
        assert child.text == ""

    def test_values_are_trimmed(self, store):
        child = store.add_child(ROOT_ID)
        store.update_node_content(child.id, "  Plan  ", "\n notes \n")
        assert child.title == "Plan"
        assert child.text == "notes"

    def test_unset_node_is_noop(self, store):
        assert store.update_node_content(None, "x", "y") is False

    def test_root_edit_renames_map(self, store):
        store.update_node_content(ROOT_ID, " Project ", "")
        assert store.root.title == "Project"
        assert store.title == "Project"

    def test_root_edit_with_empty_title(self, store):
        store.update_node_content(ROOT_ID, "Project", "")
        store.update_node_content(ROOT_ID, "   ", "")
        assert store.root.title == "New Idea"
        assert store.title == DEFAULT_MAP_TITLE

    def test_move_node_without_clamping(self, store):
        store.move_node(ROOT_ID, -5000.5, 99999)
        assert (store.root.x, store.root.y) == (-5000.5, 99999)

    def test_select_unknown_clears(self, store):
        child = store.add_child(ROOT_ID)
        store.select(child.id)
        store.select("nope")
        assert store.selected_id is None


class TestRenameMap:

    def test_rename(self, store):
        assert store.rename_map("  Roadmap ") == "Roadmap"
        assert store.title == "Roadmap"

    @pytest.mark.parametrize("value", ["", "   ", DEFAULT_MAP_TITLE])
    def test_blank_or_placeholder_keeps_previous(self, store, value):
        store.rename_map("Roadmap")
        assert store.rename_map(value) == "Roadmap"


class TestObservers:

    def test_on_changed_fires_after_mutations(self, store):
        calls = []
        store.on_changed = lambda: calls.append(1)
        child = store.add_child(ROOT_ID)
        store.move_node(child.id, 1, 2)
        store.update_node_content(child.id, "a", "b")
        store.set_translation(3, 4)
        store.delete_node(child.id)
        assert len(calls) == 5

    def test_refusals_do_not_notify_change(self, store):
        calls = []
        store.on_changed = lambda: calls.append(1)
        store.delete_node(ROOT_ID)
        store.add_child("missing")
        assert calls == []


# ===================================================================
# Load path
# ===================================================================

class TestReplace:

    def _map(self, nodes, connections, **kwargs):
        return MindMap(id="m1", title="Loaded", nodes=nodes, connections=connections, **kwargs)

    def test_replace_takes_everything(self, store):
        nodes = [Node("r", 0, 0, "Root", "", True, "#dc2626"), Node("a", 10, 20, "A")]
        mind_map = self._map(nodes, [Connection("r", "a")], view=ViewState(5, -7))
        store.select(ROOT_ID)
        store.replace(mind_map)
        assert set(store.nodes) == {"r", "a"}
        assert store.connections == [Connection("r", "a")]
        assert store.map_id == "m1"
        assert store.title == "Loaded"
        assert (store.view.translate_x, store.view.translate_y) == (5, -7)
        assert store.selected_id is None

    def test_dangling_connections_are_dropped(self, store):
        nodes = [Node("r", 0, 0, "Root", "", True), Node("a", 1, 1)]
        conns = [Connection("r", "a"), Connection("r", "ghost"), Connection("ghost", "a")]
        store.replace(self._map(nodes, conns))
        assert store.connections == [Connection("r", "a")]

    def test_duplicate_connections_collapse(self, store):
        nodes = [Node("r", 0, 0, "Root", "", True), Node("a", 1, 1)]
        conns = [Connection("r", "a"), Connection("r", "a")]
        store.replace(self._map(nodes, conns))
        assert store.connections == [Connection("r", "a")]

    def test_empty_map_gets_default_root(self, store):
        store.replace(self._map([], []))
        assert list(store.nodes) == [ROOT_ID]
        assert store.root.is_root

    def test_snapshot_round_trip(self, store):
        child = store.add_child(ROOT_ID)
        store.update_node_content(child.id, "Idea", "body")
        store.set_translation(12, 34)
        snapshot = store.to_mind_map()

        other = GraphStore()
        other.replace(snapshot)
        assert other.to_mind_map() == snapshot

    def test_snapshot_is_detached(self, store):
        snapshot = store.to_mind_map()
        store.move_node(ROOT_ID, 1, 1)
        assert snapshot.nodes[0].x == ROOT_X
