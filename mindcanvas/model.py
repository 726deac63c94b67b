"""Data model for MindCanvas mind maps."""

from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field


# Child node palette; the root keeps ROOT_COLOR
PALETTE = (
    "#EF4444",
    "#F97316",
    "#EAB308",
    "#22C55E",
    "#3B82F6",
    "#A855F7",
    "#EC4899",
)
ROOT_COLOR = "#dc2626"

ROOT_ID = "1"
ROOT_X = 400.0
ROOT_Y = 300.0
ROOT_TITLE = "Central Idea"
DEFAULT_NODE_TITLE = "New Idea"
DEFAULT_MAP_TITLE = "Untitled Map"


@dataclass
class Node:
    """A single idea on the canvas (top-left anchored)."""
    id: str
    x: float = 0.0
    y: float = 0.0
    title: str = DEFAULT_NODE_TITLE
    text: str = ""
    is_root: bool = False
    color: str = PALETTE[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "title": self.title,
            "text": self.text,
            "isRoot": self.is_root,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Build a node from its wire form.

        Raises KeyError/TypeError/ValueError on documents that cannot be
        represented (missing id, non-numeric coordinates).
        """
        node_id = data["id"]
        if node_id is None or node_id == "":
            raise ValueError("node without id")
        is_root = bool(data.get("isRoot", False))
        return cls(
            id=str(node_id),
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            title=str(data.get("title") or (ROOT_TITLE if is_root else DEFAULT_NODE_TITLE)),
            text=str(data.get("text") or ""),
            is_root=is_root,
            color=str(data.get("color") or (ROOT_COLOR if is_root else PALETTE[0])),
        )


@dataclass(frozen=True)
class Connection:
    """Directed edge, parent -> child by convention. Identity is the pair."""
    source: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        return cls(source=str(data["from"]), target=str(data["to"]))

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass
class ViewState:
    """Canvas pan offset."""
    translate_x: float = 0.0
    translate_y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"translateX": self.translate_x, "translateY": self.translate_y}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ViewState":
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise TypeError(f"expected a viewState object, got {type(data).__name__}")
        return cls(
            translate_x=float(data.get("translateX") or 0),
            translate_y=float(data.get("translateY") or 0),
        )


@dataclass
class MindMap:
    """The persisted aggregate as exchanged with the document API."""
    id: Optional[str] = None
    title: str = DEFAULT_MAP_TITLE
    nodes: List[Node] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    view: ViewState = field(default_factory=ViewState)
    owner: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Request body for POST/PUT. Server-owned fields are left out."""
        return {
            "title": self.title,
            "nodes": [n.to_dict() for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
            "viewState": self.view.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MindMap":
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        map_id = data.get("_id", data.get("id"))
        return cls(
            id=str(map_id) if map_id is not None else None,
            title=str(data.get("title") or DEFAULT_MAP_TITLE),
            nodes=[Node.from_dict(n) for n in (data.get("nodes") or [])],
            connections=[Connection.from_dict(c) for c in (data.get("connections") or [])],
            view=ViewState.from_dict(data.get("viewState")),
            owner=str(data["user"]) if data.get("user") is not None else None,
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )


@dataclass
class MapSummary:
    """A row of the map list."""
    id: str
    title: str = DEFAULT_MAP_TITLE
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapSummary":
        map_id = data.get("_id", data.get("id"))
        if map_id is None:
            raise ValueError("map without id")
        return cls(
            id=str(map_id),
            title=str(data.get("title") or DEFAULT_MAP_TITLE),
            updated_at=str(data.get("updatedAt") or ""),
        )


def default_root() -> Node:
    """The node every fresh map is seeded with."""
    return Node(
        id=ROOT_ID,
        x=ROOT_X,
        y=ROOT_Y,
        title=ROOT_TITLE,
        text="",
        is_root=True,
        color=ROOT_COLOR,
    )
