"""Custom widgets for the MindCanvas application."""

from typing import Optional, Callable, List
import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Gtk, Gdk, GLib, Gio, Adw, Pango

from mindcanvas.interaction import EditorState
from mindcanvas.model import MapSummary


class LoginPage(Gtk.Box):
    """E-mail/password form shown while there is no session."""

    def __init__(self):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=12)
        self.add_css_class("login-page")
        self.set_valign(Gtk.Align.CENTER)
        self.set_halign(Gtk.Align.CENTER)
        self.set_size_request(360, -1)

        # Callbacks
        self.on_sign_in: Optional[Callable[[str, str], None]] = None
        self.on_sign_up: Optional[Callable[[str, str], None]] = None

        title = Gtk.Label(label="MindCanvas")
        title.add_css_class("title-1")
        self.append(title)

        subtitle = Gtk.Label(label="Log in to open your mind maps")
        subtitle.add_css_class("dim-label")
        self.append(subtitle)

        self.email_entry = Gtk.Entry()
        self.email_entry.set_placeholder_text("E-mail")
        self.email_entry.set_input_purpose(Gtk.InputPurpose.EMAIL)
        self.append(self.email_entry)

        self.password_entry = Gtk.PasswordEntry()
        self.password_entry.set_show_peek_icon(True)
        self.password_entry.set_property("placeholder-text", "Password")
        self.password_entry.connect("activate", lambda e: self._submit(self.on_sign_in))
        self.append(self.password_entry)

        buttons = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        buttons.set_homogeneous(True)

        self.sign_in_btn = Gtk.Button(label="Log In")
        self.sign_in_btn.add_css_class("suggested-action")
        self.sign_in_btn.connect("clicked", lambda b: self._submit(self.on_sign_in))
        buttons.append(self.sign_in_btn)

        self.sign_up_btn = Gtk.Button(label="Register")
        self.sign_up_btn.connect("clicked", lambda b: self._submit(self.on_sign_up))
        buttons.append(self.sign_up_btn)
        self.append(buttons)

        self.status_label = Gtk.Label()
        self.status_label.set_wrap(True)
        self.status_label.add_css_class("status-line")
        self.append(self.status_label)

    def _submit(self, callback: Optional[Callable[[str, str], None]]):
        email = self.email_entry.get_text().strip()
        password = self.password_entry.get_text()
        if not email or not password:
            self.show_status("Enter your e-mail and password")
            return
        if callback:
            callback(email, password)

    def set_busy(self, busy: bool):
        self.sign_in_btn.set_sensitive(not busy)
        self.sign_up_btn.set_sensitive(not busy)

    def show_status(self, message: str):
        self.status_label.set_label(message)

    def reset(self):
        self.password_entry.set_text("")
        self.set_busy(False)


class NodeEditorDialog(Adw.Window):
    """Overlay for editing a node's title and note text. Escape cancels."""

    def __init__(self, parent: Gtk.Window, editor: EditorState):
        super().__init__()
        self.editor = editor

        self.set_transient_for(parent)
        self.set_modal(True)
        self.set_default_size(420, 360)
        self.set_title("Edit Idea")

        # Callbacks
        self.on_save: Optional[Callable[[str, str], None]] = None
        self.on_cancel: Optional[Callable[[], None]] = None

        toolbar_view = Adw.ToolbarView()
        header = Adw.HeaderBar()
        header.set_show_end_title_buttons(False)

        cancel_btn = Gtk.Button(label="Cancel")
        cancel_btn.connect("clicked", lambda b: self._cancel())
        header.pack_start(cancel_btn)

        save_btn = Gtk.Button(label="Save")
        save_btn.add_css_class("suggested-action")
        save_btn.connect("clicked", lambda b: self._save())
        header.pack_end(save_btn)
        toolbar_view.add_top_bar(header)

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=8)
        box.set_margin_start(16)
        box.set_margin_end(16)
        box.set_margin_top(12)
        box.set_margin_bottom(16)

        self.title_entry = Gtk.Entry()
        self.title_entry.set_text(editor.title)
        self.title_entry.set_placeholder_text("Title")
        self.title_entry.connect("activate", lambda e: self._save())
        box.append(self.title_entry)

        scrolled = Gtk.ScrolledWindow()
        scrolled.set_vexpand(True)
        scrolled.set_policy(Gtk.PolicyType.NEVER, Gtk.PolicyType.AUTOMATIC)
        self.text_view = Gtk.TextView()
        self.text_view.set_wrap_mode(Gtk.WrapMode.WORD_CHAR)
        self.text_view.add_css_class("note-text")
        self.text_view.get_buffer().set_text(editor.text)
        scrolled.set_child(self.text_view)
        box.append(scrolled)

        toolbar_view.set_content(box)
        self.set_content(toolbar_view)

        key_ctrl = Gtk.EventControllerKey()
        key_ctrl.connect("key-pressed", self._on_key_pressed)
        self.add_controller(key_ctrl)

        self._closed = False
        self.connect("close-request", self._on_close_request)

    def _text(self) -> str:
        buffer = self.text_view.get_buffer()
        return buffer.get_text(buffer.get_start_iter(), buffer.get_end_iter(), False)

    def _save(self):
        self._closed = True
        if self.on_save:
            self.on_save(self.title_entry.get_text(), self._text())
        self.close()

    def _cancel(self):
        self._closed = True
        if self.on_cancel:
            self.on_cancel()
        self.close()

    def _on_close_request(self, window):
        # Window manager close counts as cancel
        if not self._closed and self.on_cancel:
            self._closed = True
            self.on_cancel()
        return False

    def _on_key_pressed(self, controller, keyval, keycode, state):
        if keyval == Gdk.KEY_Escape:
            self._cancel()
            return True
        if keyval == Gdk.KEY_Return and state & Gdk.ModifierType.CONTROL_MASK:
            self._save()
            return True
        return False


class MapListRow(Gtk.Box):
    """A row in the maps list sidebar."""

    def __init__(self, summary: MapSummary):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=4)
        self.summary = summary

        self.set_margin_start(12)
        self.set_margin_end(12)
        self.set_margin_top(8)
        self.set_margin_bottom(8)

        self.name_label = Gtk.Label(label=summary.title)
        self.name_label.set_halign(Gtk.Align.START)
        self.name_label.set_ellipsize(Pango.EllipsizeMode.END)
        self.name_label.add_css_class("map-name")
        self.append(self.name_label)

        date_str = summary.updated_at[:10] if summary.updated_at else ""
        self.date_label = Gtk.Label(label=f"Updated: {date_str}")
        self.date_label.set_halign(Gtk.Align.START)
        self.date_label.add_css_class("map-date")
        self.append(self.date_label)


class MapsSidebar(Gtk.Box):
    """Left sidebar listing the user's maps on the server."""

    def __init__(self):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)

        self.add_css_class("sidebar")
        self.set_size_request(260, -1)

        # Callbacks
        self.on_map_selected: Optional[Callable[[MapSummary], None]] = None
        self.on_new_map: Optional[Callable[[], None]] = None
        self.on_map_delete: Optional[Callable[[MapSummary], None]] = None
        self.on_refresh: Optional[Callable[[], None]] = None

        self._right_click_map: Optional[MapSummary] = None
        self._context_popover: Optional[Gtk.PopoverMenu] = None
        # Set while rows are rebuilt so programmatic selection does not load maps
        self._suppress_selection = False

        header = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=4)
        header.add_css_class("sidebar-header")
        header.set_margin_start(16)
        header.set_margin_end(8)
        header.set_margin_top(12)
        header.set_margin_bottom(12)

        title = Gtk.Label(label="MY MAPS")
        title.set_hexpand(True)
        title.set_halign(Gtk.Align.START)
        title.add_css_class("sidebar-title")
        header.append(title)

        refresh_btn = Gtk.Button()
        refresh_btn.set_icon_name("view-refresh-symbolic")
        refresh_btn.set_tooltip_text("Refresh")
        refresh_btn.add_css_class("flat")
        refresh_btn.connect("clicked", lambda b: self.on_refresh and self.on_refresh())
        header.append(refresh_btn)

        new_btn = Gtk.Button()
        new_btn.set_icon_name("list-add-symbolic")
        new_btn.set_tooltip_text("New Map (Ctrl+N)")
        new_btn.add_css_class("flat")
        new_btn.connect("clicked", self._on_new_clicked)
        header.append(new_btn)

        self.append(header)
        self.append(Gtk.Separator(orientation=Gtk.Orientation.HORIZONTAL))

        scrolled = Gtk.ScrolledWindow()
        scrolled.set_vexpand(True)
        scrolled.set_policy(Gtk.PolicyType.NEVER, Gtk.PolicyType.AUTOMATIC)

        self.listbox = Gtk.ListBox()
        self.listbox.set_selection_mode(Gtk.SelectionMode.SINGLE)
        self.listbox.add_css_class("map-list")
        self.listbox.connect("row-selected", self._on_row_selected)

        right_click = Gtk.GestureClick()
        right_click.set_button(3)
        right_click.connect("pressed", self._on_right_click)
        self.listbox.add_controller(right_click)

        scrolled.set_child(self.listbox)
        self.append(scrolled)

        self.rows: List[Gtk.ListBoxRow] = []
        self.set_maps([])

    def set_maps(self, maps: List[MapSummary], selected_id: Optional[str] = None):
        """Replace the listed maps (server order, most recent first)."""
        self._suppress_selection = True
        while True:
            row = self.listbox.get_row_at_index(0)
            if row is None:
                break
            self.listbox.remove(row)
        self.rows.clear()

        for summary in maps:
            row = Gtk.ListBoxRow()
            row.set_child(MapListRow(summary))
            row.summary = summary
            self.listbox.append(row)
            self.rows.append(row)

        if not maps:
            self._show_empty_state()
        self.select_map(selected_id)
        self._suppress_selection = False

    def _show_empty_state(self):
        empty_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=8)
        empty_box.set_valign(Gtk.Align.CENTER)
        empty_box.set_margin_top(40)
        empty_box.set_margin_bottom(40)
        empty_box.add_css_class("empty-state")

        label = Gtk.Label(label="No saved maps")
        label.add_css_class("dim-label")
        empty_box.append(label)

        hint = Gtk.Label(label="Press Ctrl+S to save this one")
        hint.add_css_class("dim-label")
        hint.set_opacity(0.6)
        empty_box.append(hint)

        row = Gtk.ListBoxRow()
        row.set_child(empty_box)
        row.set_selectable(False)
        row.set_activatable(False)
        self.listbox.append(row)

    def _on_row_selected(self, listbox, row):
        if self._suppress_selection:
            return
        if row and hasattr(row, 'summary') and self.on_map_selected:
            self.on_map_selected(row.summary)

    def _on_new_clicked(self, button):
        if self.on_new_map:
            self.on_new_map()

    def _on_right_click(self, gesture, n_press, x, y):
        """Per-map context menu (delete)."""
        row = self.listbox.get_row_at_y(int(y))
        if not row or not hasattr(row, 'summary'):
            return
        self._right_click_map = row.summary

        menu = Gio.Menu()
        menu.append("Delete", "sidebar.delete-map")

        action_group = Gio.SimpleActionGroup()
        delete_action = Gio.SimpleAction.new("delete-map", None)
        delete_action.connect("activate", self._on_delete_map)
        action_group.add_action(delete_action)
        self.insert_action_group("sidebar", action_group)

        if self._context_popover is not None:
            self._context_popover.unparent()
            self._context_popover = None

        popover = Gtk.PopoverMenu.new_from_model(menu)
        popover.set_parent(self.listbox)
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

    def _on_delete_map(self, action, param):
        if self._right_click_map and self.on_map_delete:
            self.on_map_delete(self._right_click_map)

    def select_map(self, map_id: Optional[str]):
        """Select a map by id without triggering a load."""
        previous = self._suppress_selection
        self._suppress_selection = True
        self.listbox.unselect_all()
        for row in self.rows:
            if map_id is not None and row.summary.id == map_id:
                self.listbox.select_row(row)
                break
        self._suppress_selection = previous


class InstructionsPanel(Gtk.Box):
    """Floating help card describing the canvas gestures."""

    INSTRUCTIONS = [
        ("Drag a node", "Move it"),
        ("Drag the background", "Pan the canvas"),
        ("Double-click a node", "Edit title and notes"),
        ("Tab / Add", "Add a child to the selected node"),
        ("Delete", "Remove the selected node"),
        ("Ctrl+S", "Save to the server"),
        ("Escape", "Close the editor or clear selection"),
    ]

    def __init__(self):
        super().__init__(orientation=Gtk.Orientation.VERTICAL, spacing=6)
        self.add_css_class("instructions-panel")
        self.add_css_class("card")
        self.set_halign(Gtk.Align.END)
        self.set_valign(Gtk.Align.END)
        self.set_margin_end(16)
        self.set_margin_bottom(16)

        # Callbacks
        self.on_close: Optional[Callable[[], None]] = None

        header = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL)
        title = Gtk.Label(label="How to use")
        title.set_hexpand(True)
        title.set_halign(Gtk.Align.START)
        title.add_css_class("heading")
        header.append(title)

        close_btn = Gtk.Button()
        close_btn.set_icon_name("window-close-symbolic")
        close_btn.add_css_class("flat")
        close_btn.connect("clicked", lambda b: self.on_close and self.on_close())
        header.append(close_btn)
        self.append(header)

        for gesture, effect in self.INSTRUCTIONS:
            row = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=12)
            gesture_label = Gtk.Label(label=gesture)
            gesture_label.set_halign(Gtk.Align.START)
            gesture_label.set_hexpand(True)
            gesture_label.add_css_class("shortcut-action")
            row.append(gesture_label)

            effect_label = Gtk.Label(label=effect)
            effect_label.set_halign(Gtk.Align.END)
            effect_label.add_css_class("shortcut-keys")
            row.append(effect_label)
            self.append(row)


class ShortcutsDialog(Gtk.Window):
    """Keyboard shortcuts help dialog."""

    SHORTCUTS = {
        "General": [
            ("New Map", "Ctrl+N"),
            ("Save", "Ctrl+S"),
            ("Open Latest Map", "Ctrl+O"),
            ("Reload Maps", "Ctrl+R"),
            ("Toggle Sidebar", "Ctrl+B"),
            ("Keyboard Shortcuts", "Ctrl+/"),
            ("Quit", "Ctrl+Q"),
        ],
        "Canvas": [
            ("Pan Canvas", "Drag background"),
            ("Move Node", "Drag node"),
            ("Add Child", "Tab"),
            ("Edit Node", "Enter, F2 or double-click"),
            ("Delete Node", "Delete / Backspace"),
            ("Clear Selection", "Escape"),
        ],
    }

    def __init__(self, parent: Gtk.Window):
        super().__init__()

        self.set_transient_for(parent)
        self.set_modal(True)
        self.set_default_size(440, 480)
        self.set_title("Keyboard Shortcuts")

        scrolled = Gtk.ScrolledWindow()
        scrolled.set_policy(Gtk.PolicyType.NEVER, Gtk.PolicyType.AUTOMATIC)

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=24)
        box.set_margin_start(24)
        box.set_margin_end(24)
        box.set_margin_top(24)
        box.set_margin_bottom(24)

        for section, shortcuts in self.SHORTCUTS.items():
            section_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=8)
            title = Gtk.Label(label=section.upper())
            title.set_halign(Gtk.Align.START)
            title.add_css_class("shortcuts-section-title")
            section_box.append(title)

            for action, keys in shortcuts:
                row = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=12)
                action_label = Gtk.Label(label=action)
                action_label.set_halign(Gtk.Align.START)
                action_label.set_hexpand(True)
                row.append(action_label)

                keys_label = Gtk.Label(label=keys)
                keys_label.set_halign(Gtk.Align.END)
                keys_label.add_css_class("shortcut-keys")
                row.append(keys_label)
                section_box.append(row)

            box.append(section_box)

        scrolled.set_child(box)
        self.set_child(scrolled)

        key_ctrl = Gtk.EventControllerKey()
        key_ctrl.connect("key-pressed", self._on_key_pressed)
        self.add_controller(key_ctrl)

    def _on_key_pressed(self, controller, keyval, keycode, state):
        if keyval == Gdk.KEY_Escape:
            self.close()
            return True
        return False
