"""
Layers, hit-testing and intersection helpers for autopaint.

A Layer lists paths bottom to top; hit-testing walks it from the top so the
frontmost path covering a point wins.
"""

from collections import namedtuple

import numpy as np
from shapely.geometry import LineString, box


HitResult = namedtuple("HitResult", ["item", "type"])


class Layer:
    """Ordered collection of VectorPaths; index 0 is the bottom."""

    def __init__(self, paths=None, name=""):
        self.paths = list(paths or [])
        self.name = name

    def __len__(self):
        return len(self.paths)

    def __iter__(self):
        return iter(self.paths)

    def __getitem__(self, index):
        return self.paths[index]

    def append(self, path):
        self.paths.append(path)

    def index_of(self, path):
        for i, candidate in enumerate(self.paths):
            if candidate is path:
                return i
        raise ValueError(f"{path!r} is not in layer {self.name!r}")

    def remove(self, path):
        del self.paths[self.index_of(path)]

    def replace(self, path, replacements):
        """Put replacements where path was, keeping their order."""
        index = self.index_of(path)
        self.paths[index:index + 1] = list(replacements)

    def clear(self):
        self.paths.clear()

    def hit_test(self, point, fill=True, stroke=True, tolerance=0.0):
        """
        Find the frontmost path at point.

        Args:
            point: (x, y)
            fill: test the fill area of paths that carry a fill
            stroke: test outlines within tolerance
            tolerance: stroke hit distance (half the drawn line width)

        Returns:
            HitResult(item, "stroke" | "fill") or None
        """
        point = (float(point[0]), float(point[1]))
        for path in reversed(self.paths):
            if stroke and path.distance_to(point) <= tolerance:
                return HitResult(path, "stroke")
            if fill and path.has_fill and path.contains(point):
                return HitResult(path, "fill")
        return None


def distance(a, b):
    """Euclidean distance between two points."""
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


def intersection_points(geom_a, geom_b):
    """
    Points where two geometries meet.

    Collinear overlaps contribute their two endpoints. Returns an (N, 2)
    array with duplicates removed, in no particular order.
    """
    if geom_a.is_empty or geom_b.is_empty:
        return np.zeros((0, 2))
    points = _collect_points(geom_a.intersection(geom_b))
    if not points:
        return np.zeros((0, 2))
    unique = []
    for p in points:
        if not any(abs(p[0] - q[0]) < 1e-9 and abs(p[1] - q[1]) < 1e-9 for q in unique):
            unique.append(p)
    return np.array(unique, dtype=float)


def _collect_points(geom):
    if geom.is_empty:
        return []
    if geom.geom_type == "Point":
        return [(geom.x, geom.y)]
    if geom.geom_type in ("LineString", "LinearRing"):
        coords = list(geom.coords)
        return [coords[0], coords[-1]]
    if hasattr(geom, "geoms"):
        points = []
        for part in geom.geoms:
            points.extend(_collect_points(part))
        return points
    return []


def closest_intersection(path_a, path_b, point):
    """
    Intersection of two path outlines nearest to point.

    Returns an (x, y) array, or None when the outlines never meet.
    """
    if path_b is None:
        return None
    points = intersection_points(path_a.boundary, path_b.boundary)
    if len(points) == 0:
        return None
    dists = np.linalg.norm(points - np.asarray(point, dtype=float), axis=1)
    return points[int(np.argmin(dists))]


def line_intersections(start, end, path):
    """
    Intersections of the segment start-end with a path outline.

    Returns a list of (x, y) tuples ordered from start towards end.
    """
    points = intersection_points(LineString([start, end]), path.boundary)
    if len(points) == 0:
        return []
    direction = np.asarray(end, dtype=float) - np.asarray(start, dtype=float)
    order = np.argsort((points - np.asarray(start, dtype=float)) @ direction, kind="stable")
    return [tuple(points[i]) for i in order]


def clamp_to_view(start, end, points, view_bounds):
    """
    Keep line intersections inside the printable area.

    A point outside the view is replaced by the nearest point where the line
    start-end crosses the view boundary. If the line never crosses the view
    boundary the point is invisible and dropped.

    Args:
        start, end: the sampling line
        points: intersections along that line
        view_bounds: (min_x, min_y, max_x, max_y)

    Returns:
        list of (x, y) tuples, in input order
    """
    min_x, min_y, max_x, max_y = view_bounds
    view_ints = None
    out = []

    for p in points:
        if min_x <= p[0] <= max_x and min_y <= p[1] <= max_y:
            out.append(tuple(p))
            continue

        if view_ints is None:
            view_ints = intersection_points(
                LineString([start, end]), box(min_x, min_y, max_x, max_y).exterior
            )
        if len(view_ints):
            dists = np.linalg.norm(view_ints - np.asarray(p, dtype=float), axis=1)
            out.append(tuple(view_ints[int(np.argmin(dists))]))

    return out
