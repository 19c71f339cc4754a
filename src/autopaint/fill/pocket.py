"""
Pocket (offset) fill.

Clears a fill area the way a milling pocket operation does: the boundary is
offset inward by the tool radius, then again by the tool diameter until no
area remains. Offsetting runs in pyclipper's integer space; rings are then
chained innermost first into as few polylines as the area allows.
"""

import numpy as np
import pyclipper
from shapely.geometry import LineString

from autopaint.errors import DegenerateGeometry
from autopaint.fill.base import FillStrategy
from autopaint.geometry.vector_path import ActionPath, VectorPath
from autopaint.models import PathRole
from autopaint.tracer import get_tracer


# Integer units per inch used for offsetting
CLIPPER_UNITS_PER_INCH = 100000

# Max deviation of offset arcs from true circles, in device units
ARC_TOLERANCE = 0.25


def to_clipper(rings, scale):
    """Device-unit rings to integer clipper paths, dropping rings under 3 points."""
    paths = []
    for ring in rings:
        if len(ring) < 3:
            continue
        paths.append([(int(round(x * scale)), int(round(y * scale))) for x, y in ring])
    return paths


def from_clipper(paths, scale):
    """Integer clipper paths back to device-unit arrays."""
    return [np.asarray(p, dtype=float) / scale for p in paths if len(p) >= 3]


def pocket_rings(rings, diameter, scale):
    """
    Offset rings for a pocket cut with 100% stepover.

    Args:
        rings: device-unit rings of the area (even-odd)
        diameter: tool diameter in device units
        scale: clipper units per device unit

    Returns:
        (rings innermost first, first-offset rings bounding the cut),
        both as device-unit arrays

    Raises DegenerateGeometry when the area is too small for the tool.
    """
    source = to_clipper(rings, scale)
    if source:
        source = pyclipper.SimplifyPolygons(source, pyclipper.PFT_EVENODD)
    if not source:
        raise DegenerateGeometry("no area left after cleanup")

    offset = pyclipper.PyclipperOffset()
    offset.ArcTolerance = ARC_TOLERANCE * scale

    def shrink(paths, amount):
        offset.Clear()
        offset.AddPaths(paths, pyclipper.JT_ROUND, pyclipper.ET_CLOSEDPOLYGON)
        return offset.Execute(-amount * scale)

    current = shrink(source, diameter / 2.0)
    if not current:
        raise DegenerateGeometry(f"area too small for a {diameter:g} tool")

    bounds = current
    passes = []
    while current:
        passes.insert(0, current)
        current = shrink(current, diameter)

    ordered = [ring for ring_set in passes for ring in ring_set]
    return from_clipper(ordered, scale), from_clipper(bounds, scale)


def rotate_to_nearest(ring, point):
    """Closed copy of ring starting at the vertex nearest to point."""
    index = int(np.argmin(np.linalg.norm(ring - np.asarray(point, dtype=float), axis=1)))
    rotated = np.vstack([ring[index:], ring[:index]])
    return np.vstack([rotated, rotated[:1]])


class PocketFill(FillStrategy):
    """Concentric offset fill; one step per fill path."""

    name = "pocket"

    def setup(self, config, context):
        super().setup(config, context)
        self.diameter = config.pocket_diameter
        self.scale = CLIPPER_UNITS_PER_INCH / config.units_per_inch

    def fill_step(self, path):
        try:
            rings, bounds = pocket_rings(path.rings, self.diameter, self.scale)
        except DegenerateGeometry as e:
            get_tracer().event(f"Pocket {path.path_id}: {e}", level="DEBUG")
        else:
            self._chain(path, rings, bounds)

        self.units_done += 1
        self.finish(path)
        return False

    def _chain(self, path, rings, bounds):
        """Link rings innermost first while the connector stays inside the cut area."""
        area = VectorPath(bounds, closed=True).polygon.buffer(1.0 / self.scale)
        chain = None
        count = 0

        for ring in rings:
            if chain is None:
                chain = self._new_chain(path)
                chain.extend(rotate_to_nearest(ring, ring[0]))
                continue

            closed_ring = rotate_to_nearest(ring, chain.last)
            connector = LineString([chain.last, tuple(closed_ring[0])])
            if connector.length > 0 and not area.covers(connector):
                self.emit(chain)
                count += 1
                chain = self._new_chain(path)
            chain.extend(closed_ring)

        if chain is not None:
            self.emit(chain)
            count += 1

        get_tracer().event(f"Pocket {path.path_id}: {len(rings)} rings in {count} polylines", level="DEBUG")

    def _new_chain(self, path):
        return ActionPath(
            path.tool_id, name=path.name, role=PathRole.FILL,
            path_id=f"{path.path_id}:p{len(self.context.actions)}",
        )
