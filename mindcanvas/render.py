"""Cairo drawing of a projected Scene, shared by the canvas and image export."""

import math

import cairo

from mindcanvas.projector import Scene, ConnectorPath, NodeVisual, color_to_rgb

COLORS = {
    'bg_primary': (0.961, 0.961, 0.957),
    'connector': (0.58, 0.64, 0.72),
    'text_on_node': (1.0, 1.0, 1.0),
    'selection': (0.118, 0.161, 0.231),
    'shadow': (0.0, 0.0, 0.0),
}

NODE_RADIUS = 10
FONT_SIZE = 14


def rounded_rect(cr, x, y, w, h, radius):
    """Draw a rounded rectangle path."""
    cr.new_path()
    cr.arc(x + w - radius, y + radius, radius, -math.pi / 2, 0)
    cr.arc(x + w - radius, y + h - radius, radius, 0, math.pi / 2)
    cr.arc(x + radius, y + h - radius, radius, math.pi / 2, math.pi)
    cr.arc(x + radius, y + radius, radius, math.pi, 3 * math.pi / 2)
    cr.close_path()


def draw_connector(cr, connector: ConnectorPath):
    if connector.is_empty:
        return
    (sx, sy), (qx, qy), (ex, ey) = connector.start, connector.control, connector.end
    # Cairo only has cubic curves; raise the quadratic to an equivalent cubic
    c1x = sx + 2.0 / 3.0 * (qx - sx)
    c1y = sy + 2.0 / 3.0 * (qy - sy)
    c2x = ex + 2.0 / 3.0 * (qx - ex)
    c2y = ey + 2.0 / 3.0 * (qy - ey)

    cr.set_source_rgb(*COLORS['connector'])
    cr.set_line_width(2)
    cr.set_line_cap(cairo.LINE_CAP_ROUND)
    cr.move_to(sx, sy)
    cr.curve_to(c1x, c1y, c2x, c2y, ex, ey)
    cr.stroke()


def draw_node(cr, visual: NodeVisual):
    cr.save()
    # Scale around the node center
    cx = visual.x + visual.width / 2
    cy = visual.y + visual.height / 2
    cr.translate(cx, cy)
    cr.scale(visual.scale, visual.scale)
    cr.translate(-cx, -cy)

    if visual.dragging or visual.selected:
        rounded_rect(cr, visual.x + 2, visual.y + 4, visual.width, visual.height, NODE_RADIUS)
        cr.set_source_rgba(*COLORS['shadow'], 0.18)
        cr.fill()

    rounded_rect(cr, visual.x, visual.y, visual.width, visual.height, NODE_RADIUS)
    cr.set_source_rgb(*color_to_rgb(visual.color))
    cr.fill_preserve()

    if visual.selected:
        cr.set_source_rgb(*COLORS['selection'])
        cr.set_line_width(3)
    else:
        cr.set_source_rgba(*COLORS['shadow'], 0.12)
        cr.set_line_width(1)
    cr.stroke()

    cr.set_source_rgb(*COLORS['text_on_node'])
    cr.select_font_face("Sans", cairo.FONT_SLANT_NORMAL,
                        cairo.FONT_WEIGHT_BOLD if visual.is_root else cairo.FONT_WEIGHT_NORMAL)
    cr.set_font_size(FONT_SIZE)
    title = _fit_text(cr, visual.title, visual.width - 16)
    extents = cr.text_extents(title)
    cr.move_to(cx - extents.width / 2 - extents.x_bearing,
               cy - extents.height / 2 - extents.y_bearing)
    cr.show_text(title)
    cr.restore()


def draw_scene(cr, scene: Scene):
    """Connectors first, then nodes in order so later nodes sit on top."""
    for connector in scene.connectors:
        draw_connector(cr, connector)
    for visual in scene.nodes:
        draw_node(cr, visual)


def _fit_text(cr, text: str, max_width: float) -> str:
    if cr.text_extents(text).width <= max_width:
        return text
    while text and cr.text_extents(text + "…").width > max_width:
        text = text[:-1]
    return text + "…"
