"""Tests for how the GTK window and canvas wire pointer and session events.

Skipped where PyGObject with GTK 4 and libadwaita is not installed; the
canvas tests additionally need a display.
"""

import os
from unittest.mock import MagicMock

import pytest

gi = pytest.importorskip("gi")
try:
    gi.require_version("Gtk", "4.0")
    gi.require_version("Adw", "1")
except ValueError:
    pytest.skip("GTK 4 and libadwaita are required", allow_module_level=True)
pytest.importorskip("gi.events")
pytest.importorskip("cairo")

from gi.repository import Gtk

from mindcanvas.app import MindCanvasWindow
from mindcanvas.canvas import MindMapCanvas
from mindcanvas.graph import GraphStore
from mindcanvas.interaction import InteractionMode
from mindcanvas.model import ROOT_ID


def _has_display() -> bool:
    if not (os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY")):
        return False
    return bool(Gtk.init_check())


needs_display = pytest.mark.skipif(not _has_display(), reason="no display available")


# ============================================================
# Canvas pointer wiring
# ============================================================

@needs_display
class TestCanvasLeave:

    @pytest.fixture
    def canvas(self):
        return MindMapCanvas(GraphStore())

    def test_canvas_has_no_leave_controller_of_its_own(self, canvas):
        controllers = canvas.observe_controllers()
        for i in range(controllers.get_n_items()):
            assert not isinstance(controllers.get_item(i), Gtk.EventControllerMotion)

    def test_drag_survives_until_window_leave(self, canvas):
        # Root sits at (400, 300); grab it 10px inside
        canvas._on_drag_begin(None, 410, 310)
        canvas._on_drag_update(None, 5, 5)
        assert canvas.controller.mode == InteractionMode.DRAGGING

        canvas._on_window_leave(None)

        assert canvas.controller.mode == InteractionMode.IDLE
        root = canvas.store.get_node(ROOT_ID)
        assert (root.x, root.y) == (405, 305)

    def test_attach_to_window_adds_motion_controller(self, canvas):
        window = Gtk.Window()
        canvas.attach_to_window(window)
        controllers = window.observe_controllers()
        kinds = [type(controllers.get_item(i)) for i in range(controllers.get_n_items())]
        assert Gtk.EventControllerMotion in kinds


# ============================================================
# Session start
# ============================================================

class TestSessionStart:

    def test_session_start_lists_without_loading(self, alice):
        window = MagicMock()
        MindCanvasWindow._on_session_started(window, alice)

        window._refresh_maps.assert_called_once_with()
        window._spawn.assert_not_called()
        window._load.assert_not_called()
        window.stack.set_visible_child_name.assert_called_once_with("editor")

    def test_open_latest_loads_most_recent(self):
        window = MagicMock()
        MindCanvasWindow._on_open_latest(window)

        window._load.assert_called_once_with(None)
        window._spawn.assert_called_once_with(window._load.return_value)
