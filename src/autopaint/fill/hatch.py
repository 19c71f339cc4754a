"""
Hatch line fill.

Sweeps parallel lines across a fill area, one line per step, pairs the
crossings into chords and groups nearby chords. A second pass joins each
group into as few polylines as the shape allows.
"""

import math

import numpy as np
from shapely.geometry import LineString

from autopaint.errors import IncompleteFillCoverage
from autopaint.fill.base import FillStrategy
from autopaint.geometry.layers import clamp_to_view, distance, intersection_points, line_intersections
from autopaint.geometry.vector_path import ActionPath
from autopaint.models import PathRole
from autopaint.tracer import get_tracer


class FillGroup:
    """Chords close enough to each other to be drawn as one polyline."""

    def __init__(self, chord):
        self.chords = [chord]

    def __len__(self):
        return len(self.chords)

    @property
    def anchor(self):
        """Start of the most recent chord; new chords are matched against it."""
        return self.chords[-1][0]

    def add(self, chord):
        self.chords.append(chord)


def find_group(start, groups, threshold):
    """
    Index of the group whose anchor is nearest to start.

    Returns None when no anchor is closer than threshold.
    """
    best = None
    best_distance = threshold
    for i, group in enumerate(groups):
        d = distance(group.anchor, start)
        if d < best_distance:
            best, best_distance = i, d
    return best


class Sweep:
    """
    Parallel sampling lines covering a fill area.

    The lines run along angle (degrees, 0 is horizontal) and are offset
    along the normal across the extent of the ellipse bounding the path.
    """

    def __init__(self, bounds, angle, spacing):
        min_x, min_y, max_x, max_y = bounds
        width, height = max_x - min_x, max_y - min_y
        theta = math.radians(angle)

        self.direction = np.array([math.cos(theta), math.sin(theta)])
        self.normal = np.array([-math.sin(theta), math.cos(theta)])
        center = np.array([(min_x + max_x) / 2.0, (min_y + max_y) / 2.0])

        # Support of the ellipse with semi-axes (width, height) along the normal
        extent = math.hypot(self.normal[0] * width, self.normal[1] * height)
        self.count = int(2.0 * extent // spacing)
        self.step = 2.0 * extent / self.count if self.count else 0.0
        self.origin = center - extent * self.normal
        self.half_length = width + height

    def line(self, index):
        """Start and end of sampling line index."""
        mid = self.origin + self.normal * (self.step * index)
        reach = self.direction * self.half_length
        return tuple(mid - reach), tuple(mid + reach)


class HatchFill(FillStrategy):
    """Parallel-line fill with chord grouping and joining."""

    name = "hatch"
    units_per_path = 2

    def setup(self, config, context):
        super().setup(config, context)
        self.spacing = config.fill.spacing
        self.angle = config.fill.angle
        self.threshold = config.fill.threshold
        self.max_crossings = config.fill.join_max_crossings
        self._clear()

    def reset(self):
        super().reset()
        self._clear()

    def _clear(self):
        self._path = None
        self._sweep = None
        self._line_index = 0
        self._groups = []
        self._group_index = 0
        self._joining = False

    def fill_step(self, path):
        if self._path is not path:
            self._clear()
            self._path = path
            self._sweep = Sweep(path.bounds, self.angle, self.spacing)

        if not self._joining:
            if self._line_index < self._sweep.count:
                self._sample(path, self._line_index)
                self._line_index += 1
            if self._line_index >= self._sweep.count:
                self._joining = True
                self.units_done += 1
                try:
                    self._check_coverage(path)
                except IncompleteFillCoverage as e:
                    self.note_incomplete(e)
                    return self._complete(path)
            return True

        self._join(path, self._groups[self._group_index])
        self._group_index += 1
        if self._group_index >= len(self._groups):
            return self._complete(path)
        return True

    def _sample(self, path, index):
        """Cut one sweep line into chords and file them into groups."""
        start, end = self._sweep.line(index)
        crossings = line_intersections(start, end, path)
        crossings = clamp_to_view(start, end, crossings, self.context.view_bounds)

        if len(crossings) % 2:
            get_tracer().event(
                f"Sweep {index} of {path.path_id}: odd crossing count {len(crossings)}, skipped",
                level="DEBUG",
            )
            return

        for i in range(0, len(crossings), 2):
            chord = (crossings[i], crossings[i + 1])
            found = find_group(chord[0], self._groups, self.threshold)
            if found is None:
                self._groups.append(FillGroup(chord))
            else:
                self._groups[found].add(chord)

    def _check_coverage(self, path):
        if not self._groups:
            raise IncompleteFillCoverage(
                f"{path.path_id}: no sweep line crossed the path ({self._sweep.count} lines)"
            )

    def _join(self, path, group):
        """Join a group's chords end to start, splitting where a connector leaves the area."""
        chain = self._new_chain(path)
        chain.extend(group.chords[0])
        for chord in group.chords[1:]:
            if not self._can_join(path, chain.last, chord[0]):
                self.emit(chain)
                chain = self._new_chain(path)
            chain.extend(chord)
        self.emit(chain)

    def _can_join(self, path, a, b):
        if distance(a, b) == 0:
            return True
        mid = ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
        if not path.contains(mid):
            return False
        crossings = intersection_points(LineString([a, b]), path.boundary)
        return len(crossings) <= self.max_crossings

    def _new_chain(self, path):
        return ActionPath(
            path.tool_id, name=path.name, role=PathRole.FILL,
            path_id=f"{path.path_id}:h{len(self.context.actions)}",
        )

    def _complete(self, path):
        get_tracer().event(
            f"Hatched {path.path_id}: {sum(len(g) for g in self._groups)} chords "
            f"in {len(self._groups)} groups",
            level="DEBUG",
        )
        self.units_done += 1
        self.finish(path)
        self._clear()
        return False
