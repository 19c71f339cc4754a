"""
Vector path geometry for autopaint.

VectorPath holds a flattened path (one ring, or several for a compound
path) with arc-length sampling and lazily built shapely views. ActionPath is
a finished open polyline bound for the plotter.
"""

import math

import numpy as np
from shapely import make_valid
from shapely.geometry import LineString, MultiLineString, Point, Polygon
from shapely.ops import unary_union

from autopaint.models import PathRole


def flatten_segments(segments, closed, max_distance):
    """
    Flatten anchor/handle segments into a polyline.

    Straight spans keep their two anchors; cubic spans are split uniformly so
    no chord is longer than roughly max_distance.

    Args:
        segments: list of models.Segment
        closed: whether the last anchor connects back to the first
        max_distance: longest allowed chord on a curved span

    Returns:
        (N, 2) float array without a repeated closing point
    """
    if not segments:
        return np.zeros((0, 2))

    anchors = [np.asarray(s.point, dtype=float) for s in segments]
    points = [anchors[0]]

    spans = list(zip(range(len(segments) - 1), range(1, len(segments))))
    if closed and len(segments) > 1:
        spans.append((len(segments) - 1, 0))

    for a, b in spans:
        seg_a, seg_b = segments[a], segments[b]
        p0 = anchors[a]
        p3 = anchors[b]
        if not any(seg_a.handle_out) and not any(seg_b.handle_in):
            points.append(p3)
            continue

        p1 = p0 + np.asarray(seg_a.handle_out, dtype=float)
        p2 = p3 + np.asarray(seg_b.handle_in, dtype=float)
        control_length = (
            np.linalg.norm(p1 - p0) + np.linalg.norm(p2 - p1) + np.linalg.norm(p3 - p2)
        )
        steps = max(1, int(math.ceil(control_length / max_distance)))
        t = np.linspace(0.0, 1.0, steps + 1)[1:, None]
        mt = 1.0 - t
        curve = (mt ** 3) * p0 + 3 * (mt ** 2) * t * p1 + 3 * mt * (t ** 2) * p2 + (t ** 3) * p3
        points.extend(curve)

    result = _drop_repeats(np.array(points))
    if closed and len(result) > 1 and np.allclose(result[0], result[-1]):
        result = result[:-1]
    return result


def _drop_repeats(points, eps=1e-9):
    if len(points) < 2:
        return points
    keep = np.ones(len(points), dtype=bool)
    keep[1:] = np.linalg.norm(np.diff(points, axis=0), axis=1) > eps
    return points[keep]


def polygonal_part(geom):
    """Keep only the polygons of a shapely geometry (possibly empty)."""
    if geom.is_empty:
        return Polygon()
    if geom.geom_type in ("Polygon", "MultiPolygon"):
        return geom
    if hasattr(geom, "geoms"):
        parts = [polygonal_part(g) for g in geom.geoms]
        parts = [p for p in parts if not p.is_empty]
        return unary_union(parts) if parts else Polygon()
    return Polygon()


def ring_area(ring):
    """Valid polygonal area enclosed by a single ring."""
    if len(ring) < 3:
        return Polygon()
    poly = Polygon(ring)
    if not poly.is_valid:
        poly = polygonal_part(make_valid(poly))
    return poly


class VectorPath:
    """
    A flattened path in a working layer.

    Sampling (point_at, offset_of, length of the walk) always uses the first
    ring; compound paths are split into single-ring components before they
    are walked. Fill area uses the even-odd rule across all rings.
    """

    def __init__(self, rings, closed=False, role=PathRole.STROKE, tool_id=None,
                 fill_tool_id=None, name="", path_id=""):
        self.rings = [np.asarray(r, dtype=float).reshape(-1, 2) for r in rings]
        self.closed = closed
        self.role = role
        self.tool_id = tool_id
        self.fill_tool_id = fill_tool_id
        self.name = name
        self.path_id = path_id
        self._walk = None
        self._boundary = None
        self._polygon = None

    def __repr__(self):
        return (f"VectorPath(id={self.path_id!r}, tool={self.tool_id!r}, "
                f"role={self.role.value}, rings={len(self.rings)}, closed={self.closed})")

    @property
    def is_compound(self):
        return len(self.rings) > 1

    @property
    def has_fill(self):
        return self.fill_tool_id is not None

    @property
    def points(self):
        return self.rings[0] if self.rings else np.zeros((0, 2))

    def _ring_coords(self, ring):
        if self.closed and len(ring) > 2:
            return np.vstack([ring, ring[:1]])
        return ring

    def _walk_table(self):
        if self._walk is None:
            coords = self._ring_coords(self.points)
            if len(coords) > 1:
                lengths = np.linalg.norm(np.diff(coords, axis=0), axis=1)
                cumulative = np.concatenate([[0.0], np.cumsum(lengths)])
            else:
                cumulative = np.zeros(len(coords))
            self._walk = (coords, cumulative)
        return self._walk

    @property
    def length(self):
        """Arc length of the walked (first) ring."""
        _, cumulative = self._walk_table()
        return float(cumulative[-1]) if len(cumulative) else 0.0

    def point_at(self, offset):
        """Point at arc-length offset, clamped to the path."""
        coords, cumulative = self._walk_table()
        if len(coords) == 0:
            raise ValueError(f"{self.path_id}: cannot sample an empty path")
        if len(coords) == 1:
            return coords[0].copy()

        offset = min(max(offset, 0.0), cumulative[-1])
        idx = int(np.searchsorted(cumulative, offset, side="right")) - 1
        idx = min(max(idx, 0), len(coords) - 2)
        span = cumulative[idx + 1] - cumulative[idx]
        t = (offset - cumulative[idx]) / span if span > 0 else 0.0
        return coords[idx] + t * (coords[idx + 1] - coords[idx])

    def offset_of(self, point):
        """Arc-length offset of the point on the walked ring nearest to point."""
        coords, _ = self._walk_table()
        if len(coords) < 2:
            return 0.0
        return float(LineString(coords).project(Point(point)))

    @property
    def boundary(self):
        """Outline of every ring as a (Multi)LineString."""
        if self._boundary is None:
            lines = [self._ring_coords(r) for r in self.rings if len(r) > 1]
            if not lines:
                self._boundary = LineString()
            elif len(lines) == 1:
                self._boundary = LineString(lines[0])
            else:
                self._boundary = MultiLineString([LineString(c) for c in lines])
        return self._boundary

    @property
    def polygon(self):
        """Even-odd area of all rings; empty when nothing is enclosed."""
        if self._polygon is None:
            area = Polygon()
            for ring in self.rings:
                part = ring_area(ring)
                if part.is_empty:
                    continue
                area = part if area.is_empty else area.symmetric_difference(part)
            self._polygon = polygonal_part(area)
        return self._polygon

    @property
    def bounds(self):
        """(min_x, min_y, max_x, max_y) over all rings."""
        if not self.rings or not any(len(r) for r in self.rings):
            return (0.0, 0.0, 0.0, 0.0)
        allpts = np.vstack([r for r in self.rings if len(r)])
        mins = allpts.min(axis=0)
        maxs = allpts.max(axis=0)
        return (float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))

    @property
    def centroid(self):
        poly = self.polygon
        if not poly.is_empty and poly.area > 0:
            c = poly.centroid
            return np.array([c.x, c.y])
        min_x, min_y, max_x, max_y = self.bounds
        return np.array([(min_x + max_x) / 2.0, (min_y + max_y) / 2.0])

    def contains(self, point):
        """True when point lies in the fill area (boundary included)."""
        poly = self.polygon
        return not poly.is_empty and poly.covers(Point(point))

    def distance_to(self, point):
        boundary = self.boundary
        if boundary.is_empty:
            return math.inf
        return boundary.distance(Point(point))

    def components(self):
        """Split a compound path into single-ring siblings, in ring order."""
        return [
            VectorPath(
                [ring], closed=self.closed, role=self.role, tool_id=self.tool_id,
                fill_tool_id=self.fill_tool_id, name=self.name,
                path_id=f"{self.path_id}.{i}",
            )
            for i, ring in enumerate(self.rings)
        ]


class ActionPath:
    """An open polyline ready for motion translation."""

    def __init__(self, tool_id, name="", role=PathRole.STROKE, path_id="", points=None):
        self.tool_id = tool_id
        self.name = name
        self.role = role
        self.path_id = path_id
        self.points = [tuple(map(float, p)) for p in (points or [])]

    def __repr__(self):
        return (f"ActionPath(id={self.path_id!r}, tool={self.tool_id!r}, "
                f"role={self.role.value}, points={len(self.points)})")

    def __len__(self):
        return len(self.points)

    def add(self, point):
        point = (float(point[0]), float(point[1]))
        if self.points and self.points[-1] == point:
            return
        self.points.append(point)

    def extend(self, points):
        for point in points:
            self.add(point)

    def reverse(self):
        self.points.reverse()

    @property
    def first(self):
        return self.points[0]

    @property
    def last(self):
        return self.points[-1]

    @property
    def length(self):
        if len(self.points) < 2:
            return 0.0
        arr = np.asarray(self.points)
        return float(np.linalg.norm(np.diff(arr, axis=0), axis=1).sum())
