"""Pure projection of graph state into drawable connector paths and node visuals."""

import math
from dataclasses import dataclass
from typing import Optional, List, Iterable, Mapping, Tuple

from mindcanvas.model import Node, Connection

# Fixed node footprint used for connector endpoints and hit testing
NODE_WIDTH = 140.0
NODE_HEIGHT = 50.0

SELECTED_SCALE = 1.04
DRAGGING_SCALE = 1.06

Point = Tuple[float, float]


def _fmt(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


@dataclass(frozen=True)
class ConnectorPath:
    """Quadratic curve between two node centers; empty when an endpoint is missing."""
    source: str
    target: str
    start: Optional[Point] = None
    control: Optional[Point] = None
    end: Optional[Point] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None

    @property
    def path(self) -> str:
        if self.is_empty:
            return ""
        return (
            f"M {_fmt(self.start[0])} {_fmt(self.start[1])} "
            f"Q {_fmt(self.control[0])} {_fmt(self.control[1])} "
            f"{_fmt(self.end[0])} {_fmt(self.end[1])}"
        )


@dataclass(frozen=True)
class NodeVisual:
    """Per-node drawing attributes derived on every recompute."""
    node_id: str
    x: float
    y: float
    width: float
    height: float
    title: str
    color: str
    is_root: bool
    selected: bool
    dragging: bool
    scale: float

    def contains_point(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


@dataclass(frozen=True)
class Scene:
    """Everything the canvas needs to draw one frame."""
    translate_x: float
    translate_y: float
    connectors: List[ConnectorPath]
    nodes: List[NodeVisual]


def node_center(node: Node) -> Point:
    return node.x + NODE_WIDTH / 2, node.y + NODE_HEIGHT / 2


def connector_path(connection: Connection, source: Optional[Node],
                   target: Optional[Node]) -> ConnectorPath:
    """Bow the line between the two centers by a quarter of its length."""
    if source is None or target is None:
        return ConnectorPath(connection.source, connection.target)

    from_x, from_y = node_center(source)
    to_x, to_y = node_center(target)
    mid_x = (from_x + to_x) / 2
    mid_y = (from_y + to_y) / 2

    dx = to_x - from_x
    dy = to_y - from_y
    dist = math.hypot(dx, dy)
    angle = math.atan2(dy, dx)

    offset = dist / 4
    control_x = mid_x + offset * math.sin(angle)
    control_y = mid_y - offset * math.cos(angle)

    return ConnectorPath(
        connection.source,
        connection.target,
        start=(from_x, from_y),
        control=(control_x, control_y),
        end=(to_x, to_y),
    )


def connector_paths(nodes: Mapping[str, Node],
                    connections: Iterable[Connection]) -> List[ConnectorPath]:
    return [connector_path(c, nodes.get(c.source), nodes.get(c.target)) for c in connections]


def node_scale(selected: bool, dragging: bool) -> float:
    if dragging:
        return DRAGGING_SCALE
    if selected:
        return SELECTED_SCALE
    return 1.0


def node_visuals(nodes: Mapping[str, Node], selected_id: Optional[str],
                 dragging_id: Optional[str]) -> List[NodeVisual]:
    visuals = []
    for node in nodes.values():
        selected = node.id == selected_id
        dragging = node.id == dragging_id
        visuals.append(NodeVisual(
            node_id=node.id,
            x=node.x,
            y=node.y,
            width=NODE_WIDTH,
            height=NODE_HEIGHT,
            title=node.title,
            color=node.color,
            is_root=node.is_root,
            selected=selected,
            dragging=dragging,
            scale=node_scale(selected, dragging),
        ))
    return visuals


def project(store, dragging_id: Optional[str] = None) -> Scene:
    """Derive a Scene from a GraphStore (anything with nodes/connections/view/selected_id)."""
    return Scene(
        translate_x=store.view.translate_x,
        translate_y=store.view.translate_y,
        connectors=connector_paths(store.nodes, store.connections),
        nodes=node_visuals(store.nodes, store.selected_id, dragging_id),
    )


def hit_test(scene: Scene, x: float, y: float) -> Optional[str]:
    """Topmost node under a canvas-space point (later nodes draw on top)."""
    for visual in reversed(scene.nodes):
        if visual.contains_point(x, y):
            return visual.node_id
    return None


def scene_bounds(scene: Scene) -> Optional[Tuple[float, float, float, float]]:
    """(min_x, min_y, max_x, max_y) of all node footprints."""
    if not scene.nodes:
        return None
    return (
        min(v.x for v in scene.nodes),
        min(v.y for v in scene.nodes),
        max(v.x + v.width for v in scene.nodes),
        max(v.y + v.height for v in scene.nodes),
    )


def color_to_rgb(color: str, fallback: Tuple[float, float, float] = (0.5, 0.5, 0.5)) -> Tuple[float, float, float]:
    """Parse '#rrggbb' into cairo floats."""
    try:
        value = color.lstrip("#")
        return (
            int(value[0:2], 16) / 255,
            int(value[2:4], 16) / 255,
            int(value[4:6], 16) / 255,
        )
    except (ValueError, IndexError, AttributeError):
        return fallback
