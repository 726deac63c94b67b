"""Canvas widget for rendering the mind map and feeding pointer input to the controller."""

import math
from typing import Optional, Callable

import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gdk, GLib, Gio

from mindcanvas.graph import GraphStore
from mindcanvas.interaction import InteractionController, InteractionMode, PointerTarget
from mindcanvas.projector import Scene, project, hit_test
from mindcanvas.render import COLORS, draw_scene


class MindMapCanvas(Gtk.DrawingArea):
    """Draws the projected scene; all state lives in the GraphStore."""

    GRID_COLOR = (0.86, 0.87, 0.89)
    GRID_SIZE = 30

    def __init__(self, store: GraphStore):
        super().__init__()

        self.store = store
        self.controller = InteractionController(store, request_frame=self._request_frame)
        self.controller.on_mode_changed = self._on_mode_changed

        self.show_grid = True
        self._scene: Optional[Scene] = None

        # Drag gesture start, widget coordinates
        self._drag_start_x = 0.0
        self._drag_start_y = 0.0

        # Context popover tracking
        self._context_popover: Optional[Gtk.PopoverMenu] = None

        # Callbacks
        self.on_add_child: Optional[Callable[[Optional[str]], None]] = None
        self.on_delete_node: Optional[Callable[[Optional[str]], None]] = None

        self.set_draw_func(self._on_draw)
        self.set_focusable(True)
        self.set_can_focus(True)
        self._setup_event_controllers()
        self.set_hexpand(True)
        self.set_vexpand(True)

    def _setup_event_controllers(self):
        """Setup mouse and keyboard event controllers."""
        # Primary-button drag drives both node dragging and panning
        drag_ctrl = Gtk.GestureDrag()
        drag_ctrl.set_button(1)
        drag_ctrl.connect("drag-begin", self._on_drag_begin)
        drag_ctrl.connect("drag-update", self._on_drag_update)
        drag_ctrl.connect("drag-end", self._on_drag_end)
        drag_ctrl.connect("cancel", self._on_drag_cancel)
        self.add_controller(drag_ctrl)

        # Double click opens the editor
        click_ctrl = Gtk.GestureClick()
        click_ctrl.set_button(1)
        click_ctrl.connect("pressed", self._on_click)
        self.add_controller(click_ctrl)

        key_ctrl = Gtk.EventControllerKey()
        key_ctrl.connect("key-pressed", self._on_key_pressed)
        self.add_controller(key_ctrl)

        right_click = Gtk.GestureClick()
        right_click.set_button(3)
        right_click.connect("pressed", self._on_right_click)
        self.add_controller(right_click)

    def attach_to_window(self, window: Gtk.Window):
        """End drags and pans when the pointer leaves the window.

        Leaving the canvas alone keeps the gesture alive so a drag can
        pass over the sidebar or header and come back.
        """
        motion_ctrl = Gtk.EventControllerMotion()
        motion_ctrl.connect("leave", self._on_window_leave)
        window.add_controller(motion_ctrl)

    def refresh(self):
        """Re-project and redraw after a store change."""
        self._scene = None
        self.queue_draw()

    @property
    def scene(self) -> Scene:
        if self._scene is None:
            self._scene = project(self.store, self.controller.dragging_id)
        return self._scene

    # ==================== Drawing ====================

    def _on_draw(self, area, cr, width, height):
        """Main drawing function."""
        cr.save()
        cr.set_source_rgb(*COLORS['bg_primary'])
        cr.paint()

        if self.show_grid:
            self._draw_grid(cr, width, height)

        scene = self.scene
        cr.translate(scene.translate_x, scene.translate_y)
        draw_scene(cr, scene)
        cr.restore()

    def _draw_grid(self, cr, width: float, height: float):
        """Draw dot grid pattern that follows the pan offset."""
        cr.save()
        cr.set_source_rgb(*self.GRID_COLOR)
        offset_x = self.store.view.translate_x % self.GRID_SIZE
        offset_y = self.store.view.translate_y % self.GRID_SIZE
        x = offset_x
        while x < width:
            y = offset_y
            while y < height:
                cr.arc(x, y, 1.2, 0, 2 * math.pi)
                cr.fill()
                y += self.GRID_SIZE
            x += self.GRID_SIZE
        cr.restore()

    # ==================== Pointer input ====================

    def _node_at(self, x: float, y: float) -> Optional[str]:
        """Topmost node under widget coordinates."""
        scene = self.scene
        return hit_test(scene, x - scene.translate_x, y - scene.translate_y)

    def _on_drag_begin(self, gesture, start_x, start_y):
        self.grab_focus()
        self._drag_start_x = start_x
        self._drag_start_y = start_y
        node_id = self._node_at(start_x, start_y)
        if node_id is not None:
            self.controller.pointer_down(PointerTarget.NODE, start_x, start_y, node_id=node_id)
        else:
            self.controller.pointer_down(PointerTarget.CANVAS, start_x, start_y,
                                         button=gesture.get_current_button())

    def _on_drag_update(self, gesture, offset_x, offset_y):
        self.controller.pointer_move(self._drag_start_x + offset_x, self._drag_start_y + offset_y)

    def _on_drag_end(self, gesture, offset_x, offset_y):
        self.controller.pointer_up()

    def _on_drag_cancel(self, gesture, sequence):
        self.controller.pointer_leave()

    def _on_window_leave(self, controller):
        self.controller.pointer_leave()

    def _on_click(self, gesture, n_press, x, y):
        if n_press != 2:
            return
        node_id = self._node_at(x, y)
        if node_id is not None:
            self.controller.double_activate(node_id)

    def _on_mode_changed(self, mode: InteractionMode):
        if mode == InteractionMode.DRAGGING:
            self.set_cursor(Gdk.Cursor.new_from_name("grabbing"))
        elif mode == InteractionMode.PANNING:
            self.set_cursor(Gdk.Cursor.new_from_name("move"))
        else:
            self.set_cursor(None)
        self.refresh()

    def _request_frame(self, callback: Callable[[], None]):
        def on_tick(widget, frame_clock):
            callback()
            return GLib.SOURCE_REMOVE
        self.add_tick_callback(on_tick)

    # ==================== Keyboard ====================

    def _on_key_pressed(self, controller, keyval, keycode, state):
        """Handle keyboard input."""
        selected = self.store.selected_id
        if keyval == Gdk.KEY_Tab:
            if self.on_add_child:
                self.on_add_child(selected)
            return True
        if keyval in (Gdk.KEY_Delete, Gdk.KEY_BackSpace):
            if self.on_delete_node:
                self.on_delete_node(selected)
            return True
        if keyval in (Gdk.KEY_Return, Gdk.KEY_F2) and selected:
            self.controller.open_editor(selected)
            return True
        if keyval == Gdk.KEY_Escape:
            self.store.select(None)
            return True
        return False

    # ==================== Context menu ====================

    def _on_right_click(self, gesture, n_press, x, y):
        """Node context menu: edit, add child, delete."""
        node_id = self._node_at(x, y)
        if node_id is None:
            return
        self.store.select(node_id)
        node = self.store.get_node(node_id)

        menu = Gio.Menu()
        menu.append("Edit", "canvas.edit-node")
        menu.append("Add Child", "canvas.add-child")
        if node is not None and not node.is_root:
            menu.append("Delete", "canvas.delete-node")

        action_group = Gio.SimpleActionGroup()
        actions = [
            ("edit-node", lambda: self._edit_from_menu(node_id)),
            ("add-child", lambda: self.on_add_child and self.on_add_child(node_id)),
            ("delete-node", lambda: self.on_delete_node and self.on_delete_node(node_id)),
        ]
        for name, callback in actions:
            action = Gio.SimpleAction.new(name, None)
            action.connect("activate", lambda a, p, cb=callback: cb())
            action_group.add_action(action)
        self.insert_action_group("canvas", action_group)

        if self._context_popover is not None:
            self._context_popover.unparent()
            self._context_popover = None

        popover = Gtk.PopoverMenu.new_from_model(menu)
        popover.set_parent(self)
        popover.set_has_arrow(True)
        rect = Gdk.Rectangle()
        rect.x = int(x)
        rect.y = int(y)
        rect.width = 1
        rect.height = 1
        popover.set_pointing_to(rect)

        # Defer unparent to idle so the action callback fires first
        def _on_popover_closed(p):
            def _do_unparent():
                if self._context_popover is p:
                    p.unparent()
                    self._context_popover = None
                return False
            GLib.idle_add(_do_unparent)
        popover.connect("closed", _on_popover_closed)

        self._context_popover = popover
        popover.popup()

    def _edit_from_menu(self, node_id: str):
        self.controller.open_editor(node_id)
