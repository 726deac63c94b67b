"""Export functionality for MindCanvas mind maps."""

from pathlib import Path
from typing import List, Optional, Set

from mindcanvas.database import get_data_dir
from mindcanvas.graph import GraphStore
from mindcanvas.model import Node
from mindcanvas.projector import project, scene_bounds

PADDING = 50


class MindMapExporter:
    """Handles exporting the open mind map to various formats."""

    def __init__(self, store: GraphStore):
        self.store = store

    def export_png(self, filepath: str, scale: float = 2.0, transparent: bool = False) -> bool:
        """Export the map to a PNG image, laid out exactly as on the canvas."""
        import cairo
        from mindcanvas.render import COLORS, draw_scene

        scene = project(self.store)
        bounds = scene_bounds(scene)
        if bounds is None:
            return False
        min_x, min_y, max_x, max_y = bounds

        width = int((max_x - min_x + PADDING * 2) * scale)
        height = int((max_y - min_y + PADDING * 2) * scale)

        surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, width, height)
        cr = cairo.Context(surface)
        cr.scale(scale, scale)
        cr.translate(-min_x + PADDING, -min_y + PADDING)

        if not transparent:
            cr.set_source_rgb(*COLORS['bg_primary'])
            cr.paint()

        draw_scene(cr, scene)
        surface.write_to_png(filepath)
        return True

    def export_svg(self, filepath: str) -> bool:
        """Export the map to SVG."""
        import cairo
        from mindcanvas.render import COLORS, draw_scene

        scene = project(self.store)
        bounds = scene_bounds(scene)
        if bounds is None:
            return False
        min_x, min_y, max_x, max_y = bounds

        width = max_x - min_x + PADDING * 2
        height = max_y - min_y + PADDING * 2

        surface = cairo.SVGSurface(filepath, width, height)
        cr = cairo.Context(surface)
        cr.translate(-min_x + PADDING, -min_y + PADDING)
        cr.set_source_rgb(*COLORS['bg_primary'])
        cr.paint()
        draw_scene(cr, scene)
        surface.finish()
        return True

    def export_markdown(self, filepath: str, include_notes: bool = True) -> bool:
        """Export the map to a Markdown outline following connections from the root."""
        text = self.to_markdown(include_notes)
        if not text:
            return False
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(text)
        return True

    def to_markdown(self, include_notes: bool = True) -> str:
        root = self.store.root
        if root is None:
            return ""

        lines: List[str] = []
        lines.append("---")
        lines.append(f"title: {self.store.title}")
        if self.store.map_id:
            lines.append(f"id: {self.store.map_id}")
        lines.append("---")
        lines.append("")
        lines.append(f"# {root.title}")
        lines.append("")
        if include_notes:
            self._add_note(lines, root, "")

        visited: Set[str] = {root.id}

        def add_node(node: Node, depth: int):
            for child in self.store.children_of(node.id):
                # Connections may form cycles in stored data
                if child.id in visited:
                    continue
                visited.add(child.id)

                if depth == 1:
                    lines.append(f"## {child.title}")
                    note_indent = ""
                elif depth == 2:
                    lines.append(f"### {child.title}")
                    note_indent = ""
                else:
                    indent = "  " * (depth - 3)
                    lines.append(f"{indent}- {child.title}")
                    note_indent = indent + "  "

                if include_notes:
                    self._add_note(lines, child, note_indent)

                add_node(child, depth + 1)

        add_node(root, 1)
        return "\n".join(lines) + "\n"

    @staticmethod
    def _add_note(lines: List[str], node: Node, indent: str):
        if not node.text.strip():
            return
        for note_line in node.text.strip().split("\n"):
            lines.append(f"{indent}> {note_line}")
        lines.append("")


def get_export_dir(data_dir: Optional[Path] = None) -> Path:
    """Get the default export directory."""
    export_dir = get_data_dir(data_dir) / "exports"
    export_dir.mkdir(exist_ok=True)
    return export_dir
