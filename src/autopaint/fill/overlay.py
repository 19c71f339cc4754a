"""
Overlay spiral fill.

Lays one large Archimedean spiral over the page and keeps the parts of it
that fall inside each fill area. The spiral is built once per job; per path
it is only moved, intersected and walked.
"""

import math

import numpy as np

from autopaint.errors import IncompleteFillCoverage
from autopaint.fill.base import FillStrategy
from autopaint.geometry.layers import distance, intersection_points
from autopaint.geometry.vector_path import ActionPath, VectorPath
from autopaint.models import PathRole
from autopaint.tracer import get_tracer


# Angle between spiral control points (8 per turn)
SPIRAL_STEP = math.pi / 4

# Control spans dropped from the outer end after smoothing
SPIRAL_TAIL = 4

SMOOTH_SAMPLES = 4


def spiral_points(spacing, turns, start_turn=0):
    """Control points of r = spacing * theta from start_turn to turns."""
    theta = np.arange(start_turn * 2 * math.pi, turns * 2 * math.pi, SPIRAL_STEP)
    return np.column_stack([spacing * theta * np.cos(theta), spacing * theta * np.sin(theta)])


def catmull_rom(points, samples=SMOOTH_SAMPLES, drop_spans=0):
    """
    Smooth a polyline with a uniform Catmull-Rom spline through its points.

    Args:
        points: (N, 2) control points
        samples: points per span
        drop_spans: spans removed from the end

    Returns:
        (M, 2) array passing through the kept control points
    """
    padded = np.vstack([2 * points[0] - points[1], points, 2 * points[-1] - points[-2]])
    p0, p1, p2, p3 = padded[:-3], padded[1:-2], padded[2:-1], padded[3:]

    t = np.linspace(0.0, 1.0, samples, endpoint=False)[None, :, None]
    p0, p1, p2, p3 = (p[:, None, :] for p in (p0, p1, p2, p3))
    curve = 0.5 * (
        2 * p1
        + (p2 - p0) * t
        + (2 * p0 - 5 * p1 + 4 * p2 - p3) * t ** 2
        + (-p0 + 3 * p1 - 3 * p2 + p3) * t ** 3
    )

    keep = len(curve) - drop_spans
    return np.vstack([curve[:keep].reshape(-1, 2), points[keep:keep + 1]])


def build_spiral(spacing, view_bounds):
    """
    Spiral template centered on (0, 0) reaching past the view diagonal.

    Returns:
        (N, 2) polyline
    """
    min_x, min_y, max_x, max_y = view_bounds
    diagonal = math.hypot(max_x - min_x, max_y - min_y)

    turns = math.ceil(diagonal / (spacing * 2 * math.pi)) + 1
    points = spiral_points(spacing, turns)
    while np.hypot(*points[-1]) <= diagonal:
        points = np.vstack([points, spiral_points(spacing, turns * 2, start_turn=turns)])
        turns *= 2

    get_tracer().event(f"Spiral template: {turns} turns, radius {np.hypot(*points[-1]):.1f}", level="DEBUG")
    return catmull_rom(points, drop_spans=SPIRAL_TAIL)


class OverlayFill(FillStrategy):
    """Spiral overlay fill; one progress unit per path, twice the steps per tick."""

    name = "overlay"
    ticks_multiplier = 2

    def __init__(self):
        super().__init__()
        self.spiral = None
        self._clear()

    def setup(self, config, context):
        super().setup(config, context)
        self.resolution = config.flatten_resolution
        self.align_to_path = config.fill.overlay_align_to_path
        self.spiral = build_spiral(config.fill.spacing / 5.0, context.view_bounds)
        self._clear()

    def reset(self):
        super().reset()
        self.spiral = None
        self._clear()

    def _clear(self):
        self._path = None
        self._walk = None
        self._origin = None
        self._reach = 0.0
        self._crossings = []
        self._offset = 0.0
        self._inside = False
        self._run = None

    def _begin(self, path):
        """Move the spiral onto the path and record where it crosses the outline."""
        self._clear()
        self._path = path

        if self.align_to_path:
            self._origin = path.centroid
        else:
            min_x, min_y, max_x, max_y = self.context.view_bounds
            self._origin = np.array([(min_x + max_x) / 2.0, (min_y + max_y) / 2.0])

        self._walk = VectorPath([self.spiral + self._origin], path_id=f"{path.path_id}:spiral")

        min_x, min_y, max_x, max_y = path.bounds
        corners = [(min_x, min_y), (max_x, min_y), (max_x, max_y), (min_x, max_y)]
        self._reach = max(distance(self._origin, c) for c in corners)

        points = intersection_points(self._walk.boundary, path.boundary)
        self._crossings = sorted(
            ((self._walk.offset_of(p), tuple(p)) for p in points),
            key=lambda item: item[0],
        )

    def fill_step(self, path):
        if self._path is not path:
            self._begin(path)

        point = self._walk.point_at(self._offset)
        inside = self._is_inside(path, point)

        if inside:
            if not self._inside and self._offset > 0:
                self._splice(path, point)
            self._add(path, point)
        elif self._inside:
            self._splice(path, point)
            self._close_run()
        self._inside = inside

        try:
            complete = self._is_complete(path, point, inside)
        except IncompleteFillCoverage as e:
            self.note_incomplete(e)
            complete = True

        if complete:
            self._close_run()
            self.units_done += 1
            self.finish(path)
            self._clear()
            return False

        self._offset = min(self._offset + self.resolution, self._walk.length)
        return True

    def _is_inside(self, path, point):
        hit = self.context.layer.hit_test(point, fill=True, stroke=False)
        return hit is not None and hit.item is path

    def _is_complete(self, path, point, inside):
        """
        Decide whether the walk over path is over.

        Raises IncompleteFillCoverage when the spiral runs out first.
        """
        if self.align_to_path and distance(self._origin, point) > self._reach:
            return True

        if self._offset + self.resolution > self._walk.length:
            raise IncompleteFillCoverage(f"{path.path_id}: spiral exhausted at offset {self._offset:.1f}")

        if inside:
            return False

        if not self._crossings:
            return True

        return not self._recover(path)

    def _recover(self, path):
        """
        Jump ahead to the next crossing where the spiral re-enters path.

        Crossings passed on the way are dropped. Returns False when no
        remaining crossing leads back inside.
        """
        for crossing_offset, _ in self._crossings:
            if crossing_offset <= self._offset:
                continue
            probe = self._walk.point_at(crossing_offset + self.resolution)
            if self._is_inside(path, probe):
                self._crossings = [c for c in self._crossings if c[0] >= crossing_offset]
                self._offset = crossing_offset
                return True
        return False

    def _splice(self, path, point):
        """Add the unused crossing nearest to point, closing the gap at an edge."""
        if not self._crossings:
            return
        dists = [distance(point, c[1]) for c in self._crossings]
        nearest = self._crossings.pop(int(np.argmin(dists)))
        self._add(path, nearest[1])

    def _add(self, path, point):
        if self._run is None:
            self._run = ActionPath(
                path.tool_id, name=path.name, role=PathRole.FILL,
                path_id=f"{path.path_id}:o{len(self.context.actions)}",
            )
        self._run.add(point)

    def _close_run(self):
        if self._run is not None:
            self.emit(self._run)
        self._run = None
