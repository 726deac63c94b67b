"""Pointer interaction state machine for the mind map canvas.

Raw pointer events come in from the view (GTK gestures, tests) in container
coordinates; the controller turns them into drag, pan, selection and
editor actions against the GraphStore.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Callable, Tuple

from mindcanvas.graph import GraphStore
from mindcanvas.scheduler import FrameCoalescer

PRIMARY_BUTTON = 1


class InteractionMode(Enum):
    """Mutually exclusive pointer modes."""
    IDLE = "idle"
    DRAGGING = "dragging"
    PANNING = "panning"


class PointerTarget(Enum):
    """What a pointer-down landed on."""
    NODE = "node"
    CANVAS = "canvas"
    TOOLBAR = "toolbar"
    INSTRUCTIONS = "instructions"
    TEXT_EDITOR = "text_editor"
    TITLE_EDITOR = "title_editor"


@dataclass
class EditorState:
    """Content of the node editor overlay while it is open."""
    node_id: str
    title: str
    text: str


@dataclass(frozen=True)
class _FrameUpdate:
    mode: InteractionMode
    node_id: Optional[str]
    x: float
    y: float


class InteractionController:
    """Idle / Dragging(node) / Panning, plus the content editor overlay."""

    def __init__(self, store: GraphStore,
                 request_frame: Optional[Callable[[Callable[[], None]], None]] = None,
                 container_origin: Tuple[float, float] = (0.0, 0.0)):
        self.store = store
        self.container_origin = container_origin

        self.mode = InteractionMode.IDLE
        self.dragging_id: Optional[str] = None
        self.editor: Optional[EditorState] = None

        # Drag: pointer offset from the node's rendered top-left corner
        self._drag_offset_x = 0.0
        self._drag_offset_y = 0.0
        # Pan: pointer and translation at pan start
        self._pan_start_x = 0.0
        self._pan_start_y = 0.0
        self._pan_start_tx = 0.0
        self._pan_start_ty = 0.0

        self._frames: FrameCoalescer[_FrameUpdate] = FrameCoalescer(
            self._apply_frame, request_frame
        )

        # Callbacks
        self.on_mode_changed: Optional[Callable[[InteractionMode], None]] = None
        self.on_editor_changed: Optional[Callable[[Optional[EditorState]], None]] = None

    # ==================== Pointer events ====================

    def pointer_down(self, target: PointerTarget, x: float, y: float,
                     button: int = PRIMARY_BUTTON, node_id: Optional[str] = None):
        """Route a pointer-down to the drag or pan transition."""
        if target == PointerTarget.NODE and node_id is not None:
            self.pointer_down_on_node(node_id, x, y)
        elif target == PointerTarget.CANVAS and button == PRIMARY_BUTTON:
            self.pointer_down_on_canvas(x, y)
        # Toolbar, panels, overlays and non-primary buttons never start a gesture

    def pointer_down_on_node(self, node_id: str, x: float, y: float):
        if self.mode != InteractionMode.IDLE:
            return
        node = self.store.get_node(node_id)
        if node is None:
            return

        left, top = self._rendered_top_left(node.x, node.y)
        self._drag_offset_x = x - left
        self._drag_offset_y = y - top
        self.store.select(node_id)
        self.dragging_id = node_id
        self._set_mode(InteractionMode.DRAGGING)

    def pointer_down_on_canvas(self, x: float, y: float):
        if self.mode != InteractionMode.IDLE:
            return
        self._pan_start_x = x
        self._pan_start_y = y
        self._pan_start_tx = self.store.view.translate_x
        self._pan_start_ty = self.store.view.translate_y
        self.store.select(None)
        self._set_mode(InteractionMode.PANNING)

    def pointer_move(self, x: float, y: float):
        if self.mode == InteractionMode.DRAGGING:
            origin_x, origin_y = self.container_origin
            new_x = x - origin_x - self._drag_offset_x - self.store.view.translate_x
            new_y = y - origin_y - self._drag_offset_y - self.store.view.translate_y
            self._frames.submit(_FrameUpdate(self.mode, self.dragging_id, new_x, new_y))
        elif self.mode == InteractionMode.PANNING:
            new_tx = self._pan_start_tx + (x - self._pan_start_x)
            new_ty = self._pan_start_ty + (y - self._pan_start_y)
            self._frames.submit(_FrameUpdate(self.mode, None, new_tx, new_ty))

    def pointer_up(self):
        """End any gesture wherever the release happens; the last position sticks."""
        self._finish()

    def pointer_leave(self):
        self._finish()

    def flush_frame(self) -> bool:
        """Apply the latest pending drag/pan position (one scheduler tick)."""
        return self._frames.flush()

    # ==================== Editor overlay ====================

    def double_activate(self, node_id: str):
        self.open_editor(node_id)

    def open_editor(self, node_id: Optional[str]) -> bool:
        node = self.store.get_node(node_id)
        if node is None:
            return False
        self.editor = EditorState(node_id=node.id, title=node.title or "", text=node.text or "")
        self._notify_editor()
        return True

    def save_editor(self, title: str, text: str) -> bool:
        if self.editor is None:
            return False
        updated = self.store.update_node_content(self.editor.node_id, title, text)
        self.editor = None
        self._notify_editor()
        return updated

    def cancel_editor(self):
        if self.editor is None:
            return
        self.editor = None
        self._notify_editor()

    # ==================== Internals ====================

    def _rendered_top_left(self, node_x: float, node_y: float) -> Tuple[float, float]:
        origin_x, origin_y = self.container_origin
        return (
            origin_x + self.store.view.translate_x + node_x,
            origin_y + self.store.view.translate_y + node_y,
        )

    def _apply_frame(self, update: _FrameUpdate):
        if update.mode == InteractionMode.DRAGGING:
            self.store.move_node(update.node_id, update.x, update.y)
        elif update.mode == InteractionMode.PANNING:
            self.store.set_translation(update.x, update.y)

    def _finish(self):
        if self.mode == InteractionMode.IDLE:
            return
        self._frames.flush()
        self.dragging_id = None
        self._set_mode(InteractionMode.IDLE)

    def _set_mode(self, mode: InteractionMode):
        self.mode = mode
        if self.on_mode_changed:
            self.on_mode_changed(mode)

    def _notify_editor(self):
        if self.on_editor_changed:
            self.on_editor_changed(self.editor)
