"""
SVG preview of a job's action layer.

Draws every polyline in its tool's color at the configured line width, one
group per tool in drawing order, so a plot can be checked before it runs.
"""

import svgwrite

from autopaint.palette.snap import TRANSLUCENT_PREVIEW
from autopaint.tracer import get_tracer, trace


@trace(label="create_preview_svg")
def create_preview_svg(paths, palette, view_bounds, config):
    """
    Build the preview drawing.

    Args:
        paths: ActionPaths in drawing order
        palette: Palette, for tool colors
        view_bounds: (min_x, min_y, max_x, max_y)
        config: SpoolConfig

    Returns:
        svgwrite.Drawing
    """
    tracer = get_tracer()

    min_x, min_y, max_x, max_y = view_bounds
    width, height = max_x - min_x, max_y - min_y

    dwg = svgwrite.Drawing(size=(f"{width}px", f"{height}px"))
    dwg.viewbox(min_x, min_y, width, height)

    dwg.defs.add(dwg.style("""
        .stroke { stroke-linecap: round; stroke-linejoin: round; }
        .translucent { opacity: 0.5; }
    """))

    groups = {}
    for path in paths:
        if len(path) < 2:
            continue
        group = groups.get(path.tool_id)
        if group is None:
            color = palette.color_of(path.tool_id)
            classes = "stroke translucent" if color == TRANSLUCENT_PREVIEW else "stroke"
            group = dwg.g(
                id=f"tool_{path.tool_id}",
                fill="none",
                stroke=color,
                stroke_width=config.line_width,
                class_=classes,
            )
            groups[path.tool_id] = group
            dwg.add(group)

        group.add(dwg.polyline(
            points=path.points,
            class_=path.role.value,
        ))

    tracer.event(f"Preview: {sum(1 for p in paths if len(p) >= 2)} polylines, {len(groups)} tools")

    return dwg
