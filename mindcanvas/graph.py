"""In-memory graph store: the single source of truth for the open mind map."""

import logging
import math
import random
import uuid
from typing import Optional, List, Dict, Callable

from mindcanvas.model import (
    Node, Connection, ViewState, MindMap, default_root,
    PALETTE, DEFAULT_NODE_TITLE, DEFAULT_MAP_TITLE,
)

logger = logging.getLogger("mindcanvas.graph")

# Distance of a new child from its parent, in canvas units
CHILD_DISTANCE = 150.0

MSG_ADD_REFUSED = "Cannot add node: No root node found or selected node does not exist."
MSG_DELETE_REFUSED = "Cannot delete root node or no node selected."


class GraphStore:
    """Nodes, connections, view translation and selection of one mind map.

    Guard failures never raise: the operation returns ``None``/``False`` and
    the reason is reported through ``on_status``.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

        self.map_id: Optional[str] = None
        self.title: str = DEFAULT_MAP_TITLE
        self.nodes: Dict[str, Node] = {}
        self.connections: List[Connection] = []
        self.view = ViewState()
        self.selected_id: Optional[str] = None
        self.last_message: str = ""

        # Callbacks
        self.on_changed: Optional[Callable[[], None]] = None
        self.on_status: Optional[Callable[[str], None]] = None

        self.reset()

    # ==================== Queries ====================

    @property
    def root(self) -> Optional[Node]:
        for node in self.nodes.values():
            if node.is_root:
                return node
        return None

    @property
    def root_id(self) -> Optional[str]:
        root = self.root
        return root.id if root else None

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def children_of(self, node_id: str) -> List[Node]:
        """Targets of connections leaving node_id, in connection order."""
        return [
            self.nodes[c.target] for c in self.connections
            if c.source == node_id and c.target in self.nodes
        ]

    # ==================== Lifecycle ====================

    def reset(self):
        """Back to a fresh, unsaved map with only the root node."""
        root = default_root()
        self.map_id = None
        self.title = DEFAULT_MAP_TITLE
        self.nodes = {root.id: root}
        self.connections = []
        self.view = ViewState()
        self.selected_id = None
        self._notify_changed()

    def replace(self, mind_map: MindMap):
        """Replace the whole store with a loaded map.

        Dangling and duplicate connections are removed here so every later
        mutation starts from a graph that satisfies the invariants.
        """
        nodes: Dict[str, Node] = {}
        for node in mind_map.nodes:
            if node.id in nodes:
                logger.warning("Duplicate node id %r in map %s; keeping the first", node.id, mind_map.id)
                continue
            nodes[node.id] = node

        if not nodes:
            root = default_root()
            nodes[root.id] = root

        roots = [n for n in nodes.values() if n.is_root]
        if len(roots) != 1:
            logger.warning("Map %s has %d root nodes", mind_map.id, len(roots))

        connections: List[Connection] = []
        for conn in mind_map.connections:
            if conn.source not in nodes or conn.target not in nodes:
                logger.warning("Dropping dangling connection %s -> %s", conn.source, conn.target)
                continue
            if conn in connections:
                continue
            connections.append(conn)

        self.map_id = mind_map.id
        self.title = mind_map.title or DEFAULT_MAP_TITLE
        self.nodes = nodes
        self.connections = connections
        self.view = ViewState(mind_map.view.translate_x, mind_map.view.translate_y)
        self.selected_id = None
        self._notify_changed()

    def to_mind_map(self) -> MindMap:
        """Snapshot of the current state for persistence."""
        return MindMap(
            id=self.map_id,
            title=self.title,
            nodes=[
                Node(n.id, n.x, n.y, n.title, n.text, n.is_root, n.color)
                for n in self.nodes.values()
            ],
            connections=list(self.connections),
            view=ViewState(self.view.translate_x, self.view.translate_y),
        )

    def adopt_saved(self, map_id: str, title: str):
        """Take over the identifier and title the server returned."""
        self.map_id = map_id
        if title:
            self.title = title
        self._notify_changed()

    # ==================== Mutations ====================

    def add_child(self, parent_id: Optional[str] = None,
                  angle: Optional[float] = None) -> Optional[Node]:
        """Create a node CHILD_DISTANCE away from its parent and connect it.

        With no parent_id the selected node is used, falling back to the root.
        """
        if parent_id is None:
            parent_id = self.selected_id or self.root_id
        parent = self.get_node(parent_id)
        if parent is None:
            self._report(MSG_ADD_REFUSED)
            return None

        if angle is None:
            angle = self._rng.uniform(0.0, 2 * math.pi)

        node = Node(
            id=self._new_id(),
            x=parent.x + math.cos(angle) * CHILD_DISTANCE,
            y=parent.y + math.sin(angle) * CHILD_DISTANCE,
            title=DEFAULT_NODE_TITLE,
            text="",
            is_root=False,
            color=self._rng.choice(PALETTE),
        )
        self.nodes[node.id] = node
        self._add_connection(Connection(parent.id, node.id))
        self.selected_id = node.id
        self._notify_changed()
        return node

    def delete_node(self, node_id: Optional[str] = None) -> bool:
        """Remove a node and every connection touching it. The root stays."""
        if node_id is None:
            node_id = self.selected_id
        node = self.get_node(node_id)
        if node is None or node.is_root:
            self._report(MSG_DELETE_REFUSED)
            return False

        del self.nodes[node.id]
        self.connections = [c for c in self.connections if not c.touches(node.id)]
        self.selected_id = None
        self._notify_changed()
        return True

    def update_node_content(self, node_id: Optional[str], title: str, text: str) -> bool:
        """Set title and note text; editing the root also renames the map."""
        node = self.get_node(node_id)
        if node is None:
            return False

        clean_title = (title or "").strip()
        node.title = clean_title or DEFAULT_NODE_TITLE
        node.text = (text or "").strip()
        if node.is_root:
            self.title = clean_title or DEFAULT_MAP_TITLE
        self._notify_changed()
        return True

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node.x = x
        node.y = y
        self._notify_changed()
        return True

    def set_translation(self, translate_x: float, translate_y: float):
        self.view.translate_x = translate_x
        self.view.translate_y = translate_y
        self._notify_changed()

    def select(self, node_id: Optional[str]):
        if node_id is not None and node_id not in self.nodes:
            node_id = None
        if node_id != self.selected_id:
            self.selected_id = node_id
            self._notify_changed()

    def rename_map(self, title: str) -> str:
        """Title editor commit. Blank or placeholder input keeps the old title."""
        clean = (title or "").strip()
        if clean and clean != DEFAULT_MAP_TITLE:
            self.title = clean
            self._notify_changed()
        return self.title

    # ==================== Internals ====================

    def _add_connection(self, conn: Connection):
        # Connections are a set keyed by (from, to)
        if conn not in self.connections:
            self.connections.append(conn)

    def _new_id(self) -> str:
        node_id = uuid.uuid4().hex
        while node_id in self.nodes:
            node_id = uuid.uuid4().hex
        return node_id

    def _report(self, message: str):
        self.last_message = message
        if self.on_status:
            self.on_status(message)

    def _notify_changed(self):
        if self.on_changed:
            self.on_changed()
