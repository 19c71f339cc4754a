"""Pytest fixtures for autopaint tests."""

import tempfile

import pytest


# Handle length for a cubic quarter circle
KAPPA = 0.5522847498


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default configuration."""
    from autopaint.config import SpoolConfig
    return SpoolConfig()


@pytest.fixture
def palette():
    """Default eight-pen palette plus paper."""
    from autopaint.config import PaletteConfig
    from autopaint.palette.snap import Palette
    return Palette.from_config(PaletteConfig())


@pytest.fixture
def make_polygon():
    """Factory for straight-edged PathNodes."""
    from autopaint.models import PathNode, Segment

    def _make(points, closed=True, **colors):
        return PathNode(
            segments=[Segment(point=list(p)) for p in points],
            closed=closed,
            **colors,
        )
    return _make


@pytest.fixture
def make_rect(make_polygon):
    """Factory for axis-aligned rectangle PathNodes."""
    def _make(x0, y0, x1, y1, **colors):
        return make_polygon([(x0, y0), (x1, y0), (x1, y1), (x0, y1)], **colors)
    return _make


@pytest.fixture
def make_circle():
    """Factory for four-segment Bezier circle PathNodes."""
    from autopaint.models import PathNode, Segment

    def _make(cx, cy, r, **colors):
        k = KAPPA * r
        segments = [
            Segment(point=[cx + r, cy], handle_in=[0, -k], handle_out=[0, k]),
            Segment(point=[cx, cy + r], handle_in=[k, 0], handle_out=[-k, 0]),
            Segment(point=[cx - r, cy], handle_in=[0, k], handle_out=[0, -k]),
            Segment(point=[cx, cy - r], handle_in=[-k, 0], handle_out=[k, 0]),
        ]
        return PathNode(segments=segments, closed=True, **colors)
    return _make


@pytest.fixture
def make_scene():
    """Factory for a Scene from a list of nodes."""
    from autopaint.models import Scene

    def _make(children, width=200, height=200):
        return Scene(width=width, height=height, children=children)
    return _make


@pytest.fixture
def fill_run():
    """
    Run one fill strategy over a scene's fill layer.

    Returns (strategy, actions) once every fill path is consumed.
    """
    from autopaint.fill.base import FillContext
    from autopaint.scene.flatten import build_fill_layer

    def _run(strategy, scene, palette, config, max_steps=100000):
        layer = build_fill_layer(scene, palette, config)
        actions = []
        context = FillContext(layer, actions, palette, (0.0, 0.0, scene.width, scene.height))
        strategy.setup(config, context)
        steps = 0
        while strategy.advance():
            steps += 1
            assert steps < max_steps, "fill did not terminate"
        return strategy, actions
    return _run
