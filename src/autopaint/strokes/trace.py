"""
Stroke tracing for autopaint.

Walks every outline in the working layer from the bottom up, one sample per
step, and keeps only the samples where the path being traced is the
frontmost thing on the page. Visible runs become ActionPaths.
"""

from enum import Enum

from autopaint.geometry.layers import closest_intersection
from autopaint.geometry.vector_path import ActionPath
from autopaint.models import PathRole
from autopaint.tracer import get_tracer


class TraceState(str, Enum):
    """Where the tracer is with the current path."""
    SCANNING = "scanning"
    SPLITTING = "splitting"
    CLOSED = "closed"


class StrokeTracer:
    """
    Incremental outline tracer over a working layer.

    The layer is consumed destructively: the current path is always index 0
    and is removed once its end is reached. Finished runs are appended to
    actions.

    Args:
        layer: working Layer (bottom first)
        palette: Palette, used to skip background-tool paths
        config: SpoolConfig
        sink: EventSink for status and progress
    """

    def __init__(self, layer, palette, config, sink=None, actions=None):
        self.layer = layer
        self.palette = palette
        self.resolution = config.flatten_resolution
        self.tolerance = config.line_width / 2.0
        self.sink = sink
        self.actions = actions if actions is not None else []

        self.total = sum(max(len(p.rings), 1) for p in layer)
        self.processed = 0
        self.state = TraceState.SCANNING

        self._offset = 0.0
        self._last_visible = False
        self._last_item = None
        self._run = None

    @property
    def done(self):
        return len(self.layer) == 0

    def step(self):
        """
        Take one sample on the current path.

        Returns:
            False once the working layer is empty, True otherwise
        """
        if self.done:
            return False

        path = self.layer[0]

        if self.palette.is_background(path.tool_id):
            get_tracer().event(f"Skipping background path {path.path_id}", level="DEBUG")
            self.layer.remove(path)
            self._path_done(count=max(len(path.rings), 1))
            return True

        if path.is_compound:
            self.state = TraceState.SPLITTING
            self.layer.replace(path, path.components())
            return True

        self.state = TraceState.SCANNING
        point = path.point_at(self._offset)

        if len(self.layer) == 1:
            self._add(path, point)
        else:
            hit = self.layer.hit_test(point, tolerance=self.tolerance)
            if hit is None or hit.item is path:
                if not self._last_visible and self._last_item is not None and self._last_item.has_fill:
                    self._patch(path, self._last_item, point)
                self._add(path, point)
            else:
                if self._last_visible and hit.item.has_fill:
                    self._patch(path, hit.item, point)
                self._close_run()
                self._last_visible = False
            self._last_item = hit.item if hit is not None else None

        if self._offset >= path.length:
            self.state = TraceState.CLOSED
            self._close_run()
            self.layer.remove(path)
            self._path_done()
        else:
            self._offset = min(self._offset + self.resolution, path.length)

        return True

    def _add(self, path, point):
        if self._run is None:
            self._run = ActionPath(
                path.tool_id, name=path.name, role=PathRole.STROKE,
                path_id=f"{path.path_id}:s{len(self.actions)}",
            )
        self._run.add(point)
        self._last_visible = True

    def _patch(self, path, occluder, point):
        """Add the crossing with the occluder nearest to point."""
        crossing = closest_intersection(path, occluder, point)
        if crossing is not None:
            self._add(path, crossing)

    def _close_run(self):
        if self._run is not None and len(self._run):
            self.actions.append(self._run)
        self._run = None

    def _path_done(self, count=1):
        self._offset = 0.0
        self._last_visible = False
        self._last_item = None
        self._run = None
        self.processed += count

        if self.sink is not None:
            self.sink.status(f"Tracing stroke {self.processed}/{self.total}", replace=True)
            self.sink.progress(self.processed, self.total)
