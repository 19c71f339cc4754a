"""
Scene flattening for autopaint.

Dissolves groups depth-first into a flat working layer, snaps every color to
a palette tool and decides each path's role. Also prepares the fill layer:
fill areas with everything painted above them cut away.
"""

from shapely.ops import unary_union

from autopaint.errors import DegenerateGeometry
from autopaint.geometry.layers import Layer
from autopaint.geometry.vector_path import VectorPath, flatten_segments, polygonal_part
from autopaint.models import PathRole, generate_path_id
from autopaint.tracer import get_tracer, trace


def iter_leaves(nodes):
    """
    Walk scene nodes depth-first, dissolving groups.

    Yields PathNode and CompoundNode items in paint order (bottom first);
    group children take the group's place.
    """
    for node in nodes:
        if node.kind == "group":
            yield from iter_leaves(node.children)
        else:
            yield node


def _node_parts(node):
    if node.kind == "compound":
        return list(node.components)
    return [node]


def _node_rings(node, resolution, force_closed=False):
    rings = []
    for part in _node_parts(node):
        ring = flatten_segments(part.segments, part.closed or force_closed, resolution)
        if len(ring) >= 2:
            rings.append(ring)
    return rings


def _node_closed(node):
    return all(part.closed for part in _node_parts(node))


@trace(label="flatten_scene")
def flatten_scene(scene, palette, config):
    """
    Flatten a scene into the working layer used by the stroke tracer.

    Each path is drawn (outlined) with its stroke tool when it has a stroke,
    otherwise with its fill tool. Paths with a fill that is not the
    background color are closed so outline and fill agree.

    Args:
        scene: models.Scene
        palette: palette.snap.Palette
        config: SpoolConfig

    Returns:
        Layer of VectorPaths in paint order
    """
    tracer = get_tracer()

    layer = Layer(name="working")
    dropped = 0

    for index, node in enumerate(iter_leaves(scene.children)):
        try:
            layer.append(_working_path(node, index, palette, config))
        except DegenerateGeometry as e:
            dropped += 1
            tracer.event(f"Dropped path: {e}", level="DEBUG")

    tracer.event(f"Flattened scene: {len(layer)} paths, {dropped} dropped")

    return layer


def _working_path(node, index, palette, config):
    label = node.name or f"#{index}"
    has_stroke = node.stroke_color is not None and node.stroke_width > 0
    has_fill = node.fill_color is not None

    if not has_stroke and not has_fill:
        raise DegenerateGeometry(f"{label}: neither stroke nor fill")

    fill_tool = palette.snap_id(node.fill_color, node.opacity) if has_fill else None
    if has_stroke:
        tool, role = palette.snap_id(node.stroke_color, node.opacity), PathRole.STROKE
    else:
        tool, role = fill_tool, PathRole.FILL

    closed = _node_closed(node)
    if not closed and fill_tool is not None and not palette.is_background(fill_tool):
        closed = True

    rings = _node_rings(node, config.flatten_resolution, force_closed=closed)
    path = VectorPath(
        rings, closed=closed, role=role, tool_id=tool, fill_tool_id=fill_tool,
        name=node.name, path_id=generate_path_id(rings[0] if rings else [], index),
    )
    if not rings or all(c.length == 0 for c in path.components()):
        raise DegenerateGeometry(f"{label}: zero length")

    return path


@trace(label="build_fill_layer")
def build_fill_layer(scene, palette, config):
    """
    Build the layer of visible fill areas for the fill engine.

    Only paths with a fill color take part; all of them are closed and
    tagged with their fill tool. Each area loses whatever any path above it
    covers, so no two fill paths overlap. Background fills stay in the layer
    (they still hide what is below) and are dropped by the fill engine.

    Returns:
        Layer of closed, fill-role VectorPaths in paint order
    """
    tracer = get_tracer()

    entries = []
    for index, node in enumerate(iter_leaves(scene.children)):
        if node.fill_color is None:
            continue
        rings = _node_rings(node, config.flatten_resolution, force_closed=True)
        if not rings:
            continue
        fill_tool = palette.snap_id(node.fill_color, node.opacity)
        area = VectorPath(rings, closed=True, fill_tool_id=fill_tool).polygon
        if area.is_empty:
            tracer.event(f"Dropped fill {node.name or index}: no area", level="DEBUG")
            continue
        entries.append((area, fill_tool, node.name, generate_path_id(rings[0], index)))

    layer = Layer(name="fill")
    for i, (area, fill_tool, name, path_id) in enumerate(entries):
        above = [entry[0] for entry in entries[i + 1:]]
        if above:
            area = polygonal_part(area.difference(unary_union(above)))
        if area.is_empty or area.area <= 0:
            tracer.event(f"Fill {path_id} fully covered", level="DEBUG")
            continue
        layer.append(VectorPath(
            rings_of(area), closed=True, role=PathRole.FILL, tool_id=fill_tool,
            fill_tool_id=fill_tool, name=name, path_id=path_id,
        ))

    tracer.event(f"Fill layer: {len(layer)} of {len(entries)} fill areas visible")

    return layer


def rings_of(area):
    """Exterior and interior rings of a (Multi)Polygon, without closing points."""
    polygons = area.geoms if area.geom_type == "MultiPolygon" else [area]
    rings = []
    for poly in polygons:
        rings.append(list(poly.exterior.coords)[:-1])
        for interior in poly.interiors:
            rings.append(list(interior.coords)[:-1])
    return rings
