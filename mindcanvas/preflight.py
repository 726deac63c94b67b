"""Environment and dependency preflight checks for the desktop app.

Set MINDCANVAS_SKIP_PREFLIGHT=1 to bypass (useful for development).
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PreflightResult:
    ok: bool
    message: str


def _has_display() -> bool:
    return bool(os.environ.get("WAYLAND_DISPLAY") or os.environ.get("DISPLAY"))


def _check_python_deps() -> Optional[str]:
    """Return an error message if required GUI deps are missing."""
    try:
        import cairo  # type: ignore[import-not-found]  # noqa: F401
    except ImportError as exc:
        return (
            "Missing Python dependency 'pycairo'. "
            "Install the GUI extra (pip install 'mindcanvas[gui]') and ensure cairo is available. "
            f"Underlying error: {exc}"
        )

    try:
        import gi  # type: ignore[import-not-found]

        gi.require_version("Gtk", "4.0")
        gi.require_version("Adw", "1")
        gi.require_version("Gdk", "4.0")
        from gi.repository import Gtk, Adw, Gdk  # type: ignore[import-not-found]  # noqa: F401
        from gi.events import GLibEventLoopPolicy  # type: ignore[import-not-found]  # noqa: F401
    except (ImportError, ValueError) as exc:
        return (
            "Missing GTK 4 / libadwaita bindings or PyGObject older than 3.50. "
            "Install gtk4, libadwaita and the GUI extra (pip install 'mindcanvas[gui]'). "
            f"Underlying error: {exc}"
        )

    return None


def run_preflight(
    *,
    require_display: bool = True,
    check_deps: bool = True,
) -> PreflightResult:
    """Run checks and return a structured result."""
    if os.environ.get("MINDCANVAS_SKIP_PREFLIGHT") == "1":
        return PreflightResult(True, "Preflight skipped via MINDCANVAS_SKIP_PREFLIGHT=1")

    if not sys.platform.startswith("linux"):
        return PreflightResult(
            False,
            f"MindCanvas targets Linux desktops; detected {sys.platform}. "
            "Set MINDCANVAS_SKIP_PREFLIGHT=1 to bypass.",
        )

    if require_display and not _has_display():
        return PreflightResult(
            False,
            "No graphical session found (neither WAYLAND_DISPLAY nor DISPLAY is set). "
            "Use mindcanvas-cli for headless access, or set MINDCANVAS_SKIP_PREFLIGHT=1 to bypass.",
        )

    if check_deps:
        dep_error = _check_python_deps()
        if dep_error:
            return PreflightResult(False, dep_error)

    return PreflightResult(True, "Preflight OK")


def run_preflight_or_die(
    *,
    require_display: bool = True,
    check_deps: bool = True,
) -> None:
    result = run_preflight(require_display=require_display, check_deps=check_deps)
    if result.ok:
        return

    sys.stderr.write("\nMindCanvas preflight check failed:\n")
    sys.stderr.write(result.message)
    sys.stderr.write("\n\n")
    sys.stderr.write(
        "Suggested setup:\n"
        "  sudo dnf install gtk4 libadwaita python3-gobject cairo-devel   # Fedora\n"
        "  sudo apt install gir1.2-gtk-4.0 gir1.2-adw-1 libcairo2-dev     # Debian/Ubuntu\n"
        "  pip install 'mindcanvas[gui]'\n\n"
    )
    raise SystemExit(1)
