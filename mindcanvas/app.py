"""Main MindCanvas application."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Set

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gdk, Gio, GLib, Adw
from gi.events import GLibEventLoopPolicy

from mindcanvas import __version__, __app_id__
from mindcanvas.auth import AuthClient, AuthError
from mindcanvas.canvas import MindMapCanvas
from mindcanvas.config import ClientConfig, setup_logging
from mindcanvas.database import Database, get_db_path
from mindcanvas.export import MindMapExporter, get_export_dir
from mindcanvas.gateway import MindMapGateway, ResultStatus
from mindcanvas.graph import GraphStore
from mindcanvas.interaction import EditorState
from mindcanvas.model import MapSummary
from mindcanvas.session import Session, SessionManager
from mindcanvas.widgets import (
    LoginPage, MapsSidebar, InstructionsPanel, NodeEditorDialog, ShortcutsDialog
)

logger = logging.getLogger("mindcanvas.app")


class MindCanvasWindow(Adw.ApplicationWindow):
    """Main application window."""

    def __init__(self, app: Adw.Application, db: Database, config: ClientConfig):
        super().__init__(application=app)
        self.db = db
        self.config = config

        self.sessions = SessionManager(db)
        self.store = GraphStore()
        self.gateway = MindMapGateway(self.store, self.sessions, config)
        self.auth = AuthClient(config)
        self.exporter = MindMapExporter(self.store)

        self._loop = asyncio.get_event_loop_policy().get_event_loop()
        self._tasks: Set[asyncio.Task] = set()
        self._editor_dialog: Optional[NodeEditorDialog] = None

        self.set_title("MindCanvas")
        self.set_default_size(1280, 820)

        self._load_css()
        self._build_ui()
        self._setup_shortcuts()

        self.store.on_changed = self._on_store_changed
        self.store.on_status = self._on_store_status
        self.canvas.controller.on_editor_changed = self._on_editor_changed
        self.sessions.on_started.append(self._on_session_started)
        self.sessions.on_ended.append(self._on_session_ended)

        self.connect("close-request", self._on_close_request)

        if self.sessions.restore() is None:
            self._show_login()

    def _load_css(self):
        """Load custom CSS theme."""
        css_provider = Gtk.CssProvider()
        css_path = Path(__file__).parent / "theme.css"
        if css_path.exists():
            css_provider.load_from_path(str(css_path))
            Gtk.StyleContext.add_provider_for_display(
                Gdk.Display.get_default(),
                css_provider,
                Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION
            )

    def _build_ui(self):
        """Build the login page and the editor page."""
        self.stack = Gtk.Stack()
        self.stack.set_transition_type(Gtk.StackTransitionType.CROSSFADE)

        # Login page
        login_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        login_header = Adw.HeaderBar()
        login_header.add_css_class("flat")
        login_box.append(login_header)

        self.login_page = LoginPage()
        self.login_page.set_vexpand(True)
        self.login_page.on_sign_in = lambda e, p: self._spawn(self._sign_in(e, p, register=False))
        self.login_page.on_sign_up = lambda e, p: self._spawn(self._sign_in(e, p, register=True))
        if not self.config.auth_enabled:
            self.login_page.show_status("Login is not configured. Set MINDCANVAS_AUTH_URL.")
            self.login_page.set_busy(True)
        login_box.append(self.login_page)
        self.stack.add_named(login_box, "login")

        # Editor page
        editor_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        editor_box.append(self._build_header())

        self.main_paned = Gtk.Paned(orientation=Gtk.Orientation.HORIZONTAL)
        self.main_paned.set_vexpand(True)

        self.sidebar = MapsSidebar()
        self.sidebar.on_map_selected = self._on_map_selected
        self.sidebar.on_new_map = self._on_new_map
        self.sidebar.on_map_delete = self._on_map_delete
        self.sidebar.on_refresh = self._refresh_maps

        self.sidebar_revealer = Gtk.Revealer()
        self.sidebar_revealer.set_transition_type(Gtk.RevealerTransitionType.SLIDE_RIGHT)
        self.sidebar_revealer.set_reveal_child(True)
        self.sidebar_revealer.set_child(self.sidebar)

        self.main_paned.set_start_child(self.sidebar_revealer)
        self.main_paned.set_shrink_start_child(False)
        self.main_paned.set_resize_start_child(False)

        self.canvas = MindMapCanvas(self.store)
        self.canvas.on_add_child = self._add_child
        self.canvas.on_delete_node = self._delete_node
        self.canvas.attach_to_window(self)

        self.instructions = InstructionsPanel()
        self.instructions.on_close = lambda: self._set_instructions_visible(False)
        self.instructions.set_visible(bool(self.db.get_setting("show_instructions", True)))

        canvas_overlay = Gtk.Overlay()
        canvas_overlay.set_child(self.canvas)
        canvas_overlay.add_overlay(self.instructions)

        canvas_frame = Gtk.Frame()
        canvas_frame.set_child(canvas_overlay)
        canvas_frame.add_css_class("canvas-container")
        self.main_paned.set_end_child(canvas_frame)
        editor_box.append(self.main_paned)

        # Status line
        self.status_label = Gtk.Label()
        self.status_label.set_halign(Gtk.Align.START)
        self.status_label.set_margin_start(12)
        self.status_label.set_margin_top(4)
        self.status_label.set_margin_bottom(4)
        self.status_label.add_css_class("status-line")
        editor_box.append(self.status_label)

        self.stack.add_named(editor_box, "editor")

        # Wrap in toast overlay for in-app notifications
        self.toast_overlay = Adw.ToastOverlay()
        self.toast_overlay.set_child(self.stack)
        self.set_content(self.toast_overlay)

    def _build_header(self) -> Adw.HeaderBar:
        """Build the header bar toolbar."""
        header = Adw.HeaderBar()
        header.add_css_class("flat")

        menu_btn = Gtk.MenuButton()
        menu_btn.set_icon_name("open-menu-symbolic")
        menu_btn.set_tooltip_text("Menu")

        menu = Gio.Menu()
        file_section = Gio.Menu()
        file_section.append("New Map", "win.new-map")
        file_section.append("Open Latest Map", "win.open-latest")
        file_section.append("Save", "win.save")
        file_section.append("Reload Maps", "win.refresh-maps")
        menu.append_section(None, file_section)

        export_section = Gio.Menu()
        export_menu = Gio.Menu()
        export_menu.append("Export as PNG...", "win.export-png")
        export_menu.append("Export as SVG...", "win.export-svg")
        export_menu.append("Export as Markdown...", "win.export-md")
        export_section.append_submenu("Export", export_menu)
        menu.append_section(None, export_section)

        help_section = Gio.Menu()
        help_section.append("Show Instructions", "win.show-instructions")
        help_section.append("Keyboard Shortcuts", "win.show-shortcuts")
        help_section.append("About MindCanvas", "win.show-about")
        menu.append_section(None, help_section)

        popover = Gtk.PopoverMenu()
        popover.set_menu_model(menu)
        menu_btn.set_popover(popover)
        header.pack_start(menu_btn)

        sidebar_btn = Gtk.ToggleButton()
        sidebar_btn.set_icon_name("sidebar-show-symbolic")
        sidebar_btn.set_tooltip_text("Toggle Sidebar (Ctrl+B)")
        sidebar_btn.set_active(True)
        sidebar_btn.connect("toggled", self._on_sidebar_toggled)
        self.sidebar_btn = sidebar_btn
        header.pack_start(sidebar_btn)

        # Map title editor
        self.title_entry = Gtk.Entry()
        self.title_entry.set_text(self.store.title)
        self.title_entry.set_max_width_chars(25)
        self.title_entry.add_css_class("flat")
        self.title_entry.add_css_class("title")
        self.title_entry.connect("activate", self._on_title_changed)
        focus_ctrl = Gtk.EventControllerFocus()
        focus_ctrl.connect("leave", lambda c: self._on_title_changed(self.title_entry))
        self.title_entry.add_controller(focus_ctrl)
        header.pack_start(self.title_entry)

        # Node toolbar
        toolbar = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=4)
        toolbar.add_css_class("linked")

        add_btn = Gtk.Button(label="Add Idea")
        add_btn.set_tooltip_text("Add a child to the selected node (Tab)")
        add_btn.connect("clicked", lambda b: self._add_child(None))
        toolbar.append(add_btn)

        self.edit_btn = Gtk.Button(label="Edit")
        self.edit_btn.set_tooltip_text("Edit the selected node (Enter)")
        self.edit_btn.connect("clicked", lambda b: self.canvas.controller.open_editor(self.store.selected_id))
        toolbar.append(self.edit_btn)

        self.delete_btn = Gtk.Button(label="Delete")
        self.delete_btn.set_tooltip_text("Delete the selected node (Delete)")
        self.delete_btn.add_css_class("destructive-action")
        self.delete_btn.connect("clicked", lambda b: self._delete_node(None))
        toolbar.append(self.delete_btn)
        header.set_title_widget(toolbar)

        logout_btn = Gtk.Button()
        logout_btn.set_icon_name("system-log-out-symbolic")
        logout_btn.set_tooltip_text("Log Out")
        logout_btn.connect("clicked", lambda b: self.sessions.end("logout"))
        header.pack_end(logout_btn)

        self.user_label = Gtk.Label()
        self.user_label.add_css_class("dim-label")
        header.pack_end(self.user_label)

        self.save_btn = Gtk.Button(label="Save")
        self.save_btn.add_css_class("suggested-action")
        self.save_btn.set_tooltip_text("Save (Ctrl+S)")
        self.save_btn.connect("clicked", lambda b: self._on_save())
        header.pack_end(self.save_btn)

        return header

    def _setup_shortcuts(self):
        """Setup keyboard shortcuts."""
        actions = [
            ("new-map", self._on_new_map, "<Control>n"),
            ("save", self._on_save, "<Control>s"),
            ("open-latest", self._on_open_latest, "<Control>o"),
            ("refresh-maps", self._refresh_maps, "<Control>r"),
            ("toggle-sidebar", self._toggle_sidebar, "<Control>b"),
            ("show-instructions", lambda: self._set_instructions_visible(True), None),
            ("show-shortcuts", self._show_shortcuts, "<Control>slash"),
            ("show-about", self._show_about, None),
            ("export-png", lambda: self._export("png"), None),
            ("export-svg", lambda: self._export("svg"), None),
            ("export-md", lambda: self._export("md"), None),
            ("quit", lambda: self.close(), "<Control>q"),
        ]

        for name, callback, accel in actions:
            action = Gio.SimpleAction.new(name, None)
            action.connect("activate", lambda a, p, cb=callback: cb())
            self.add_action(action)
            if accel:
                self.get_application().set_accels_for_action(f"win.{name}", [accel])

        self.get_application().set_accels_for_action("win.show-shortcuts", ["<Control>slash", "F1"])

    # ==================== Async plumbing ====================

    def _spawn(self, coro):
        """Run a coroutine on the GLib-backed asyncio loop, keeping a reference."""
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)
            self._set_status(f"Unexpected error: {exc}")

    # ==================== Session ====================

    async def _sign_in(self, email: str, password: str, register: bool):
        self.login_page.set_busy(True)
        self.login_page.show_status("Signing in…" if not register else "Creating account…")
        try:
            if register:
                session = await self.auth.sign_up(email, password)
                if session is None:
                    self.login_page.show_status("Check your e-mail to confirm the account, then log in.")
                    return
            else:
                session = await self.auth.sign_in(email, password)
        except AuthError as exc:
            self.login_page.show_status(str(exc))
            return
        finally:
            self.login_page.set_busy(False)
        self.sessions.begin(session)

    def _on_session_started(self, session: Session):
        self.user_label.set_label(session.email)
        self.login_page.reset()
        self.stack.set_visible_child_name("editor")
        # Loading stays a user action; only the list is fetched here
        self._refresh_maps()
        self._set_status("Pick a map from the sidebar or open the latest one")

    def _on_session_ended(self, reason: str):
        self._close_editor_dialog()
        self.store.reset()
        self.sidebar.set_maps([])
        self.user_label.set_label("")
        self._show_login()
        if reason == "unauthorized":
            self.login_page.show_status("Session expired or unauthorized. Please log in again.")

    def _show_login(self):
        self.stack.set_visible_child_name("login")
        self.login_page.email_entry.grab_focus()

    # ==================== Persistence ====================

    def _on_save(self):
        self._spawn(self._save())

    async def _save(self):
        self._set_status("Saving…")
        self.save_btn.set_sensitive(False)
        try:
            result = await self.gateway.save()
        finally:
            self.save_btn.set_sensitive(True)
        if result.status == ResultStatus.DISCARDED:
            return
        self._set_status(result.message)
        self._show_toast(result.message)
        if result.ok:
            self._refresh_maps()

    async def _load(self, map_id: Optional[str]):
        self._set_status("Loading…")
        result = await self.gateway.load(map_id)
        if result.status == ResultStatus.DISCARDED:
            return
        self._set_status(result.message)
        if result.ok:
            self.sidebar.select_map(result.map_id)

    def _on_open_latest(self):
        self._spawn(self._load(None))

    def _refresh_maps(self):
        self._spawn(self._list_maps())

    async def _list_maps(self):
        result = await self.gateway.list_maps()
        if result.ok:
            self.sidebar.set_maps(result.maps, self.store.map_id)
        elif result.status != ResultStatus.DISCARDED:
            self._set_status(result.message)

    def _on_map_selected(self, summary: MapSummary):
        if summary.id == self.store.map_id:
            return
        self._spawn(self._load(summary.id))

    def _on_new_map(self):
        """Start a fresh map; it is created on the server at the first save."""
        self.store.reset()
        self.sidebar.select_map(None)
        self._set_status("New map (not saved yet)")
        self.title_entry.grab_focus()

    def _on_map_delete(self, summary: MapSummary):
        dialog = Adw.MessageDialog(
            transient_for=self,
            heading="Delete Map?",
            body=f"Are you sure you want to delete \"{summary.title}\"? This cannot be undone."
        )
        dialog.add_response("cancel", "Cancel")
        dialog.add_response("delete", "Delete")
        dialog.set_response_appearance("delete", Adw.ResponseAppearance.DESTRUCTIVE)
        dialog.set_default_response("cancel")
        dialog.connect("response", lambda d, r: self._confirm_map_delete(r, summary))
        dialog.present()

    def _confirm_map_delete(self, response: str, summary: MapSummary):
        if response == "delete":
            self._spawn(self._delete_map(summary))

    async def _delete_map(self, summary: MapSummary):
        result = await self.gateway.delete_map(summary.id)
        if result.status == ResultStatus.DISCARDED:
            return
        self._set_status(result.message)
        if result.ok:
            self._show_toast(f"Deleted \"{summary.title}\"")
            self._refresh_maps()

    # ==================== Store and editor events ====================

    def _on_store_changed(self):
        self.canvas.refresh()
        if not self.title_entry.has_focus() and self.title_entry.get_text() != self.store.title:
            self.title_entry.set_text(self.store.title)
        has_selection = self.store.selected_id is not None
        self.edit_btn.set_sensitive(has_selection)
        selected = self.store.get_node(self.store.selected_id)
        self.delete_btn.set_sensitive(selected is not None and not selected.is_root)

    def _on_store_status(self, message: str):
        self._set_status(message)
        self._show_toast(message)

    def _add_child(self, parent_id: Optional[str]):
        if self.store.add_child(parent_id) is not None:
            self.canvas.controller.open_editor(self.store.selected_id)

    def _delete_node(self, node_id: Optional[str]):
        self.store.delete_node(node_id)

    def _on_editor_changed(self, editor: Optional[EditorState]):
        if editor is None:
            self._close_editor_dialog()
            return
        self._close_editor_dialog()
        dialog = NodeEditorDialog(self, editor)
        dialog.on_save = self.canvas.controller.save_editor
        dialog.on_cancel = self.canvas.controller.cancel_editor
        self._editor_dialog = dialog
        dialog.present()
        dialog.title_entry.grab_focus()

    def _close_editor_dialog(self):
        dialog = self._editor_dialog
        self._editor_dialog = None
        if dialog is not None:
            dialog.on_cancel = None
            dialog.on_save = None
            dialog.close()

    def _on_title_changed(self, entry):
        title = self.store.rename_map(entry.get_text())
        if entry.get_text() != title:
            entry.set_text(title)

    # ==================== View actions ====================

    def _on_sidebar_toggled(self, button):
        self.sidebar_revealer.set_reveal_child(button.get_active())

    def _toggle_sidebar(self):
        revealed = self.sidebar_revealer.get_reveal_child()
        self.sidebar_revealer.set_reveal_child(not revealed)
        self.sidebar_btn.set_active(not revealed)

    def _set_instructions_visible(self, visible: bool):
        self.instructions.set_visible(visible)
        self.db.set_setting("show_instructions", visible)

    def _show_shortcuts(self):
        ShortcutsDialog(self).present()

    def _show_about(self):
        about = Adw.AboutWindow(
            transient_for=self,
            application_name="MindCanvas",
            application_icon="applications-graphics",
            developer_name="MindCanvas Project",
            version=__version__,
            license_type=Gtk.License.MIT_X11,
            comments="A mind map editor backed by a document API",
        )
        about.present()

    def _set_status(self, message: str):
        self.status_label.set_label(message or "")

    def _show_toast(self, message: str):
        """Show a toast notification."""
        if not message:
            return
        toast = Adw.Toast(title=message)
        toast.set_timeout(3)
        self.toast_overlay.add_toast(toast)

    # ==================== Export ====================

    EXPORT_FORMATS = {
        "png": ("Export as PNG", "PNG Images", "image/png", None),
        "svg": ("Export as SVG", "SVG Images", "image/svg+xml", None),
        "md": ("Export as Markdown", "Markdown Files", None, "*.md"),
    }

    def _export(self, fmt: str):
        title, filter_name, mime, pattern = self.EXPORT_FORMATS[fmt]
        dialog = Gtk.FileDialog()
        dialog.set_title(title)
        dialog.set_initial_name(f"{self.store.title}.{fmt}")
        dialog.set_initial_folder(Gio.File.new_for_path(str(get_export_dir(self.config.data_dir))))

        file_filter = Gtk.FileFilter()
        file_filter.set_name(filter_name)
        if mime:
            file_filter.add_mime_type(mime)
        if pattern:
            file_filter.add_pattern(pattern)
        filters = Gio.ListStore.new(Gtk.FileFilter)
        filters.append(file_filter)
        dialog.set_filters(filters)

        dialog.save(self, None, lambda d, r: self._on_export_response(d, r, fmt))

    def _on_export_response(self, dialog, result, fmt: str):
        try:
            file = dialog.save_finish(result)
        except GLib.Error:
            return  # User cancelled
        if not file:
            return
        filepath = file.get_path()
        if not filepath:
            self._show_toast("Export failed: selected location is not a local file")
            return

        if fmt == "png":
            ok = self.exporter.export_png(filepath)
        elif fmt == "svg":
            ok = self.exporter.export_svg(filepath)
        else:
            ok = self.exporter.export_markdown(filepath)
        self._show_toast(f"Exported to {filepath}" if ok else "Export failed")

    # ==================== Shutdown ====================

    def _on_close_request(self, window):
        for task in list(self._tasks):
            task.cancel()
        self._loop.create_task(self.gateway.aclose())
        return False


class MindCanvasApp(Adw.Application):
    """Main application class."""

    def __init__(self, config: ClientConfig):
        super().__init__(
            application_id=__app_id__,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS
        )
        self.config = config
        self.db: Optional[Database] = None
        self.window: Optional[MindCanvasWindow] = None

    def do_startup(self):
        """Initialize application."""
        Adw.Application.do_startup(self)
        self.db = Database(get_db_path(self.config.data_dir))

    def do_activate(self):
        """Activate application."""
        if not self.window:
            self.window = MindCanvasWindow(self, self.db, self.config)
        self.window.present()

    def do_shutdown(self):
        """Shutdown application."""
        if self.db:
            self.db.close()
        Adw.Application.do_shutdown(self)


def main() -> int:
    """Application entry point."""
    config = ClientConfig.from_env()
    setup_logging(config.log_level)
    asyncio.set_event_loop_policy(GLibEventLoopPolicy())
    app = MindCanvasApp(config)
    return app.run(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
