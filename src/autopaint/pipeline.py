"""
Incremental execution driver for autopaint.

Runs a job through tracing, fill setup, filling, travel ordering and motion
streaming, a bounded number of steps per tick, so a host loop never blocks.
All job state lives in one RunState owned by the driver.
"""

from dataclasses import dataclass, field
from enum import Enum

from autopaint.config import SpoolConfig, validate_config
from autopaint.events import EventSink
from autopaint.fill.base import FillContext, select_strategy
from autopaint.palette.snap import Palette
from autopaint.scene.flatten import build_fill_layer, flatten_scene
from autopaint.sequence.motion import MotionWriter
from autopaint.sequence.travel import TravelSequencer, travel_distance
from autopaint.strokes.trace import StrokeTracer
from autopaint.tracer import get_tracer, trace


class Phase(str, Enum):
    """Job phases, in the order a job moves through them."""
    IDLE = "idle"
    TRACING = "tracing"
    FILL_SETUP = "fill_setup"
    FILLING = "filling"
    SEQUENCING = "sequencing"
    STREAMING = "streaming"
    DONE = "done"
    CANCELED = "canceled"


FINISHED = (Phase.DONE, Phase.CANCELED)


@dataclass
class RunState:
    """Everything one job owns; discarded as a whole on cancel."""
    scene: object
    palette: Palette
    strategy: object
    view_bounds: tuple
    phase: Phase = Phase.IDLE
    working: object = None
    fill_layer: object = None
    actions: list = field(default_factory=list)
    stroke_tracer: object = None
    sequencer: object = None
    ordered: list = field(default_factory=list)
    writer: MotionWriter = field(default_factory=MotionWriter)
    stream_index: int = 0
    commands_sent: int = 0
    completed: int = 0
    total: int = 0
    fill_paths: int = 0
    ticks: int = 0
    cancel_requested: bool = False


class AutoPaintDriver:
    """
    Drives one job at a time through its phases.

    Args:
        config: SpoolConfig (defaults when None)
        sink: EventSink receiving status, progress, motion and the terminal signal
    """

    def __init__(self, config=None, sink=None):
        self.config = config if config is not None else SpoolConfig()
        self.sink = sink if sink is not None else EventSink()
        self.state = None

    @property
    def phase(self):
        return self.state.phase if self.state is not None else Phase.IDLE

    @property
    def active(self):
        return self.state is not None and self.state.phase not in FINISHED

    @property
    def actions(self):
        """The action layer of the current job (drawing order once sequenced)."""
        if self.state is None:
            return []
        return self.state.ordered or self.state.actions

    @trace(label="start_job")
    def start(self, scene):
        """
        Begin a job on scene.

        Configuration, palette and scene colors are checked first;
        InvalidConfiguration (or ValueError for an unreadable scene color) is
        raised before any job state changes. An active job is canceled and
        discarded.
        """
        tracer = get_tracer()

        validate_config(self.config)
        palette = Palette.from_config(self.config.palette)
        strategy = select_strategy(self.config.fill.strategy)
        working = flatten_scene(scene, palette, self.config)

        if self.active:
            tracer.event("Discarding active job", level="WARN")
            self._abort()

        width = self.config.view.width or scene.width
        height = self.config.view.height or scene.height

        self.state = RunState(
            scene=scene,
            palette=palette,
            strategy=strategy,
            view_bounds=(0.0, 0.0, float(width), float(height)),
            working=working,
        )
        state = self.state

        state.stroke_tracer = StrokeTracer(
            state.working, palette, self.config, sink=self.sink, actions=state.actions,
        )

        self.sink.status(f"Tracing stroke 1/{state.stroke_tracer.total}", replace=True)
        self._enter(Phase.TRACING, state.stroke_tracer.total)
        return state

    def cancel(self):
        """Ask the active job to stop at the next tick."""
        if self.active:
            self.state.cancel_requested = True

    def tick(self):
        """
        Advance the active job by one scheduling slice.

        Returns:
            True while the job still has work, False once it is done or canceled
        """
        state = self.state
        if state is None or state.phase in FINISHED:
            return False

        if state.cancel_requested:
            self._abort()
            return False

        state.ticks += 1
        budget = self.config.steps_per_tick
        if state.phase == Phase.FILLING:
            budget *= state.strategy.ticks_multiplier

        for _ in range(budget):
            if state.phase in FINISHED:
                break
            self._step(state)

        return state.phase not in FINISHED

    def run(self, scene):
        """Start a job and tick it to the end. Returns the final RunState."""
        state = self.start(scene)
        while self.tick():
            pass
        return state

    def _step(self, state):
        if state.phase == Phase.TRACING:
            if not state.stroke_tracer.step():
                self._enter(Phase.FILL_SETUP, 1)

        elif state.phase == Phase.FILL_SETUP:
            self._setup_fill(state)

        elif state.phase == Phase.FILLING:
            self._fill(state)

        elif state.phase == Phase.SEQUENCING:
            if state.sequencer.step():
                self._progress(state, len(state.sequencer.ordered))
            else:
                state.ordered = state.sequencer.ordered
                self.sink.status("Drawing", replace=True)
                self._enter(Phase.STREAMING, len(state.ordered))

        elif state.phase == Phase.STREAMING:
            self._stream(state)

    def _setup_fill(self, state):
        tracer = get_tracer()

        with tracer.span("fill_setup", module="pipeline"):
            state.fill_layer = build_fill_layer(state.scene, state.palette, self.config)
            context = FillContext(
                state.fill_layer, state.actions, state.palette, state.view_bounds,
                debug=self.config.debug.enabled,
            )
            state.strategy.setup(self.config, context)
            tracer.event(f"Fill strategy {state.strategy.name}: {len(state.fill_layer)} paths")

        state.fill_paths = len(state.fill_layer)
        self.sink.status(f"Filling 1/{state.fill_paths}", replace=True)
        self._enter(Phase.FILLING, state.strategy.step_max(state.fill_paths))

    def _fill(self, state):
        strategy = state.strategy
        paths_before = strategy.paths_done

        if not strategy.advance():
            self._enter(Phase.SEQUENCING, len(state.actions))
            state.sequencer = TravelSequencer(state.actions, state.palette.sorted_tool_ids())
            self.sink.status("Ordering paths", replace=True)
            return

        if strategy.paths_done != paths_before:
            self.sink.status(f"Filling {strategy.paths_done}/{state.fill_paths}", replace=True)
        if strategy.units_done != state.completed:
            self._progress(state, strategy.units_done)

    def _stream(self, state):
        if state.stream_index >= len(state.ordered):
            self._finish(state)
            return

        path = state.ordered[state.stream_index]
        self.sink.status(f"Drawing {path.role.value} {path.name or path.path_id}")
        for command in state.writer.commands_for(path):
            self.sink.motion(command)
            state.commands_sent += 1

        state.stream_index += 1
        self._progress(state, state.stream_index)

    def _enter(self, phase, total):
        state = self.state
        state.phase = phase
        state.completed = 0
        state.total = total
        get_tracer().event(f"Phase {phase.value}: {total} units")
        self.sink.progress(0, total)

    def _progress(self, state, completed):
        state.completed = completed
        self.sink.progress(completed, state.total)

    def _finish(self, state):
        state.phase = Phase.DONE
        get_tracer().event(
            f"Job done: {len(state.ordered)} paths, {state.commands_sent} commands, {state.ticks} ticks"
        )
        self.sink.status("Complete", replace=True)
        self.sink.complete()

    def _abort(self):
        """Discard the current job's layers and signal cancellation."""
        state = self.state
        state.phase = Phase.CANCELED
        if state.working is not None:
            state.working.clear()
        if state.fill_layer is not None:
            state.fill_layer.clear()
        state.actions.clear()
        state.ordered = []
        state.strategy.reset()

        get_tracer().event(f"Job canceled after {state.ticks} ticks", level="WARN")
        self.sink.canceled()


def summarize_run(state, config):
    """Plain-dict summary of a finished job."""
    tools = {}
    for path in state.ordered:
        entry = tools.setdefault(path.tool_id, {"paths": 0, "points": 0, "length": 0.0})
        entry["paths"] += 1
        entry["points"] += len(path)
        entry["length"] += path.length

    return {
        "phase": state.phase.value,
        "fill_strategy": config.fill.strategy,
        "view_bounds": list(state.view_bounds),
        "paths": len(state.ordered),
        "commands": state.commands_sent,
        "ticks": state.ticks,
        "travel_distance": travel_distance(state.ordered),
        "tools": tools,
    }
