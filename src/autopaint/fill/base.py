"""
Fill engine interface for autopaint.

A fill strategy turns closed fill areas into open polylines, a bounded
amount of work per call, so the driver can interleave it with a host loop.
Exactly one strategy runs per job.
"""

from abc import ABC, abstractmethod

from autopaint.errors import InvalidConfiguration
from autopaint.tracer import get_tracer


class FillContext:
    """
    Shared state a strategy works against.

    Args:
        layer: fill Layer; the path at index 0 is the one being filled
        actions: list receiving finished ActionPaths
        palette: Palette
        view_bounds: (min_x, min_y, max_x, max_y) of the printable area
        debug: log incomplete coverage diagnostics
    """

    def __init__(self, layer, actions, palette, view_bounds, debug=False):
        self.layer = layer
        self.actions = actions
        self.palette = palette
        self.view_bounds = view_bounds
        self.debug = debug


class FillStrategy(ABC):
    """
    Base class for fill strategies.

    Subclasses implement fill_step(); advance() is what the driver calls.
    Progress is counted in units: units_per_path for every fill path,
    reported through units_done.
    """

    name = ""
    units_per_path = 1
    ticks_multiplier = 1

    def __init__(self):
        self.config = None
        self.context = None
        self.units_done = 0
        self.paths_done = 0

    def setup(self, config, context):
        """One-time initialization for a job."""
        self.config = config
        self.context = context

    def step_max(self, path_count):
        """Total progress units needed for path_count fill paths."""
        return path_count * self.units_per_path

    @abstractmethod
    def fill_step(self, path):
        """
        Do one bounded unit of work on path.

        Returns:
            False exactly when the path is finished and removed from the
            fill layer, True while more steps remain
        """

    def reset(self):
        """Drop precomputed geometry and counters so the strategy can be reused."""
        self.config = None
        self.context = None
        self.units_done = 0
        self.paths_done = 0

    def advance(self):
        """
        Work on the current fill path.

        Background-tool and zero-area paths are dropped without filling.

        Returns:
            False once the fill layer is empty, True otherwise
        """
        layer = self.context.layer
        if not len(layer):
            return False

        path = layer[0]
        min_x, min_y, max_x, max_y = path.bounds
        if self.context.palette.is_background(path.tool_id) or max_x <= min_x or max_y <= min_y:
            get_tracer().event(f"Skipping fill {path.path_id}", level="DEBUG")
            layer.remove(path)
            self.units_done += self.units_per_path
            self.paths_done += 1
            return True

        self.fill_step(path)
        return True

    def finish(self, path):
        """Remove a completed path from the fill layer."""
        self.context.layer.remove(path)
        self.paths_done += 1

    def emit(self, action):
        """Add a finished polyline to the action layer; single points are dropped."""
        if len(action) >= 2:
            self.context.actions.append(action)

    def note_incomplete(self, error):
        """Log partial coverage, only when geometry diagnostics are on."""
        if self.context.debug:
            get_tracer().event(f"Incomplete fill: {error}", level="DEBUG")


def select_strategy(name):
    """
    Create the fill strategy named by configuration.

    Raises InvalidConfiguration for an unknown name.
    """
    from autopaint.fill.hatch import HatchFill
    from autopaint.fill.overlay import OverlayFill
    from autopaint.fill.pocket import PocketFill

    strategies = {
        HatchFill.name: HatchFill,
        PocketFill.name: PocketFill,
        OverlayFill.name: OverlayFill,
    }
    if name not in strategies:
        raise InvalidConfiguration(f"Unknown fill strategy {name!r}, expected one of {sorted(strategies)}")
    return strategies[name]()
